from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .timeutil import from_iso, to_iso


@dataclass
class Employee:
    """A library member. ``barcode`` equals ``id`` and never changes."""

    id: str
    name: str
    email: str
    barcode: str
    registered_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "barcode": self.barcode,
            "registered_at": to_iso(self.registered_at),
        }

    @staticmethod
    def from_dict(data: dict) -> "Employee":
        return Employee(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            barcode=data.get("barcode") or data["id"],
            registered_at=from_iso(data["registered_at"]),
        )

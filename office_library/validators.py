import re
from typing import Optional

# Full-width digits U+FF10..U+FF19 map onto ASCII '0'..'9'.
_FULL_WIDTH_DIGITS = {0xFF10 + i: ord("0") + i for i in range(10)}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ISBNValidator:
    """ISBN-10 / ISBN-13 checksum validation and identifier normalization."""

    @staticmethod
    def normalize_identifier(raw: Optional[str]) -> str:
        """Convert full-width digits to ASCII and drop whitespace and hyphens."""
        if raw is None:
            return ""
        s = raw.translate(_FULL_WIDTH_DIGITS)
        return "".join(ch for ch in s if ch != "-" and not ch.isspace())

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        s = ISBNValidator.normalize_identifier(isbn)
        if len(s) == 10:
            return ISBNValidator._is_valid_isbn10(s)
        if len(s) == 13:
            return ISBNValidator._is_valid_isbn13(s)
        return False

    @staticmethod
    def _is_valid_isbn10(s: str) -> bool:
        # Weights 10..1; a trailing 'X' counts as 10.
        if not (s[:9].isascii() and s[:9].isdigit()):
            return False
        check = s[9]
        if check == "X":
            check_val = 10
        elif check.isascii() and check.isdigit():
            check_val = int(check)
        else:
            return False
        total = sum((10 - i) * int(ch) for i, ch in enumerate(s[:9]))
        return (total + check_val) % 11 == 0

    @staticmethod
    def _is_valid_isbn13(s: str) -> bool:
        if not (s.isascii() and s.isdigit()):
            return False
        total = 0
        for i, ch in enumerate(s[:-1]):
            factor = 1 if i % 2 == 0 else 3
            total += factor * int(ch)
        check_val = (10 - (total % 10)) % 10
        return check_val == int(s[-1])


class EmailValidator:
    """Shape check for ``local@domain.tld``; not a full RFC 5322 parser."""

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if email is None:
            return False
        return bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()


class TextValidator:
    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()


normalize_identifier = ISBNValidator.normalize_identifier
is_valid_isbn = ISBNValidator.is_valid_isbn
is_valid_email = EmailValidator.is_valid_email

import re

from codeassess.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_EMAIL_LENGTH = 254


def validate_email(email: str) -> None:
    """Validate an already-normalized email address.

    Requirements:
    - Exactly one '@' with a dotted domain part
    - No whitespace characters
    - At most 254 characters

    Raises:
        ValidationError: If the address doesn't meet requirements
    """
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email address is too long")

    if not EMAIL_RE.fullmatch(email):
        raise ValidationError(f"Invalid email address '{email}'")

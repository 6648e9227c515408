"""Input rules shared by every service."""
import re

from space_together.core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
USERNAME_RE = re.compile(r"^[a-z0-9_]+$")
HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not is_valid_email(email):
        raise ValidationError(f"Invalid email address: {email}")
    return email.lower()


def validate_username(username: str) -> str:
    """Slug rule: lowercase letters, digits and underscores only."""
    if not username or USERNAME_RE.match(username) is None:
        raise ValidationError(
            f"Invalid username '{username}': use lowercase letters, digits and underscores only"
        )
    return username


def validate_name(name: str, label: str = "name") -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(f"The {label} must not be empty")
    return name


def is_valid_hhmm(value: str) -> bool:
    return bool(value) and HHMM_RE.match(value) is not None


def validate_hhmm(value: str, label: str = "time") -> str:
    if not is_valid_hhmm(value):
        raise ValidationError(f"Invalid {label} '{value}': expected HH:MM")
    return value


def hhmm_to_minutes(value: str) -> int:
    validate_hhmm(value)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(total: int) -> str:
    total %= 24 * 60
    return f"{total // 60:02d}:{total % 60:02d}"

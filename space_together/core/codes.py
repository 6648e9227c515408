"""Generators for public codes, usernames and registration numbers."""
import random
import re
import secrets
import string
from typing import Awaitable, Callable

from space_together.core.exceptions import InternalError

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 5


def slugify(text: str) -> str:
    """Lowercase snake_case: "Primary 1 General 2026-2027" -> "primary_1_general_2026_2027"."""
    return re.sub(r"[^a-z0-9]+", "_", (text or "").lower()).strip("_")


def generate_code_candidate(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


async def generate_code(exists: Callable[[str], Awaitable[bool]], max_attempts: int = 20) -> str:
    """Random code not yet taken according to ``exists``; retries on collision."""
    for _ in range(max_attempts):
        candidate = generate_code_candidate()
        if not await exists(candidate):
            return candidate
    raise InternalError("Could not generate a unique code")


def generate_username_candidate(name: str) -> str:
    words = [w for w in slugify(name).split("_") if w] or ["user"]
    random.shuffle(words)
    return f"{'_'.join(words)}_{random.randint(0, 255)}"


async def generate_username(
    name: str, exists: Callable[[str], Awaitable[bool]], max_attempts: int = 20
) -> str:
    for _ in range(max_attempts):
        candidate = generate_username_candidate(name)
        if not await exists(candidate):
            return candidate
    return f"{slugify(name) or 'user'}_{secrets.token_hex(4)}"


def generate_registration_number(school_username: str, year: int) -> str:
    return f"{school_username}-{year}-{random.randint(0, 9999):04d}"

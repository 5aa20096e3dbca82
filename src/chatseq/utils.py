import secrets
from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def generate_token() -> str:
    """Random public token identifying a chat application in URLs."""
    return secrets.token_hex(16)

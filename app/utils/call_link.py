"""Meeting-room link generation."""

import secrets
import string

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 10


def generate_room_token(length: int = TOKEN_LENGTH) -> str:
    """Generate an opaque meeting-room token like 'k3x9q7m2ab'."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def generate_call_link(base_url: str) -> str:
    """Generate a call link for a new booking.

    Args:
        base_url: Meeting host, e.g. 'https://meet.devcall.com'

    Returns:
        str: Link like 'https://meet.devcall.com/k3x9q7m2ab'
    """
    return f"{base_url.rstrip('/')}/{generate_room_token()}"

"""Block identifier generation."""

import secrets
import string

BLOCK_ID_ALPHABET = string.ascii_letters + string.digits
BLOCK_ID_LENGTH = 10


def generate_block_id(length: int = BLOCK_ID_LENGTH) -> str:
    """
    Generate a random opaque block identifier.

    Ids are short alphanumeric strings, unique for the lifetime of a
    document. Collisions are checked by the collection on insert.

    Args:
        length: Number of characters (defaults to 10)

    Returns:
        Random identifier string

    Example:
        >>> generate_block_id()
        "q7Fh2LmZ0a"
    """
    return "".join(secrets.choice(BLOCK_ID_ALPHABET) for _ in range(length))

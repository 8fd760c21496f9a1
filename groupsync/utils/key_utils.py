# =============================================================================
# File: groupsync/utils/key_utils.py - Public key encoding helpers
# =============================================================================
# Group and account public keys travel as raw bytes on the protocol side and
# as URL-safe base64 strings (no padding) in the local store.
# =============================================================================

import base64
import binascii


def b64_encode_bytes(data: bytes) -> str:
    """
    Encode raw bytes as unpadded URL-safe base64.

    Args:
        data: Raw key bytes

    Returns:
        Encoded string, stable for a given input
    """
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64_decode_bytes(value: str) -> bytes:
    """
    Decode an unpadded URL-safe base64 string.

    Raises:
        ValueError: If the string is not valid base64
    """
    if not isinstance(value, str):
        raise ValueError(f"expected str, got {type(value).__name__}")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 key: {value!r}") from e


def short_key(value: str, size: int = 8) -> str:
    """Shorten an encoded key for log lines."""
    return value if len(value) <= size else f"{value[:size]}..."

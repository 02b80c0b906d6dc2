"""base64url codec for Gmail wire payloads.

Gmail delivers body and attachment data base64url encoded without padding,
and expects outgoing raw messages in the same form.
"""

import base64
import binascii

# Returned in place of a body part whose data cannot be decoded
DECODE_ERROR_PLACEHOLDER = "(error decoding body)"


def decode_base64url(data: str) -> str:
    """Decode base64url data to text.

    Padding is optional. A part that is not valid base64 yields
    :data:`DECODE_ERROR_PLACEHOLDER` instead of raising, so one corrupt part
    never aborts a whole message fetch. Bytes that are not valid UTF-8 are
    replaced rather than rejected.

    Args:
        data: base64url (or standard base64) encoded string.

    Returns:
        Decoded text.
    """
    try:
        normalized = data.replace("-", "+").replace("_", "/").rstrip("=")
        normalized += "=" * (-len(normalized) % 4)
        raw = base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError):
        return DECODE_ERROR_PLACEHOLDER
    return raw.decode("utf-8", errors="replace")


def encode_base64url(text: str) -> str:
    """Encode text as unpadded base64url.

    Args:
        text: Text to encode; encoded as UTF-8 first.

    Returns:
        base64url string using ``-`` and ``_`` with padding stripped.
    """
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")

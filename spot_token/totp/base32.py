"""
Base32 codec (RFC 4648 alphabet) used for TOTP shared secrets.

Encoding is standard padded base32. Decoding is deliberately lenient in
the way authenticator secrets are usually written: case-insensitive,
trailing '=' optional, and any leftover bits shorter than a byte at the
end of the input are discarded instead of rejected.

Usage:
    from spot_token.totp import base32

    base32.encode(b"foo")        # "MZXW6==="
    base32.decode("mzxw6")       # b"foo"
"""

import base64

from spot_token.core.exceptions import InvalidEncodingError


ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
PADDING = "="

_LOOKUP = {char: index for index, char in enumerate(ALPHABET)}


def encode(data: bytes) -> str:
    """
    Encode bytes as base32 text, padded with '=' to a multiple of 8 characters.

    Args:
        data: Bytes to encode. Empty input yields an empty string.

    Returns:
        Base32 text over A-Z and 2-7.
    """
    return base64.b32encode(bytes(data)).decode("ascii")


def decode(text: str) -> bytes:
    """
    Decode base32 text to bytes.

    Args:
        text: Base32 text. Case is ignored and trailing '=' padding is
              stripped before decoding, so padding is optional.

    Returns:
        The decoded bytes. Bits left over after the last full byte are
        discarded.

    Raises:
        InvalidEncodingError: If the text contains a character outside
                              the alphabet (after stripping trailing '=').

    Behavior:
        Accumulates 5 bits per symbol and emits a byte each time at least
        8 bits are buffered.
    """
    normalized = text.upper().rstrip(PADDING)

    buffer = 0
    bits = 0
    output = bytearray()

    for position, char in enumerate(normalized):
        value = _LOOKUP.get(char)
        if value is None:
            raise InvalidEncodingError(
                f"Invalid base32 character: {char!r}",
                details={"character": char, "position": position}
            )
        buffer = ((buffer << 5) | value) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            output.append((buffer >> bits) & 0xFF)

    return bytes(output)


def strip_padding(text: str) -> str:
    """Remove every '=' from base32 text (secrets are stored unpadded)."""
    return text.replace(PADDING, "")

"""
TOTP primitives for spot-token.

    - base32: Secret encoding used by authenticator-style secrets
    - otp: RFC 4226 counter codes and RFC 6238 time-based codes
"""

from spot_token.totp import base32
from spot_token.totp.otp import generate_totp, hotp, timecode

__all__ = [
    "base32",
    "generate_totp",
    "hotp",
    "timecode",
]

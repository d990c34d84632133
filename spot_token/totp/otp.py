"""
Counter- and time-based one-time codes (RFC 4226 / RFC 6238).

The web player signs its token request with a standard TOTP: 30 second
step, HMAC-SHA1, 6 digit dynamic truncation. The shared secret is a base32
string produced by the secret deriver.

Code generation is done by pyotp. Secrets pass through the lenient base32
decoder first, so unpadded or lowercase input is accepted and anything
that is not base32 raises InvalidEncodingError.
"""

import hashlib

import pyotp

from spot_token.totp import base32


TIME_STEP = 30
DIGITS = 6


def _canonical_secret(key: bytes) -> str:
    # pyotp re-pads and decodes this with base64.b32decode
    return base32.encode(key)


def hotp(key: bytes, counter: int, digits: int = DIGITS) -> str:
    """
    Generate the HMAC-based one-time code for a counter value.

    :param key: raw shared secret bytes
    :param counter: the HMAC counter value
    :param digits: number of decimal digits in the code
    :returns: zero-padded code string
    :raises ValueError: if the counter is negative
    """
    return pyotp.HOTP(_canonical_secret(key), digits=digits, digest=hashlib.sha1).at(counter)


def timecode(timestamp: int | float, interval: int = TIME_STEP) -> int:
    """Return the TOTP counter (time window index) for a Unix timestamp."""
    return int(timestamp // interval)


def generate_totp(secret: str, timestamp: int | float) -> str:
    """
    Generate the 6 digit TOTP for a base32 secret at a given time.

    Two timestamps in the same 30 second window always yield the same code.

    :param secret: shared secret in base32 (padding optional)
    :param timestamp: Unix time in seconds, normally the server's clock
    :returns: 6 digit code
    :raises InvalidEncodingError: if the secret is not valid base32
    """
    key = base32.decode(secret)
    totp = pyotp.TOTP(
        _canonical_secret(key),
        digits=DIGITS,
        digest=hashlib.sha1,
        interval=TIME_STEP,
    )
    # TOTP.at() goes through datetime.fromtimestamp and local time; the
    # window index is computed directly from epoch seconds instead.
    return totp.generate_otp(timecode(timestamp))

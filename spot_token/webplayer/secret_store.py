"""
Secret version table and TOTP secret derivation.

The web player signs token requests with a TOTP whose shared secret is
not shipped directly. Instead a small list of "cipher bytes" is published
per secret version; the player XORs each byte with a position-dependent
key, writes the results as one long decimal digit string, and uses the
base32 form of that string as the TOTP secret.

Secret versions rotate. This module keeps a thread-safe table of known
versions, seeded with built-in entries, that can be refreshed from a
remote JSON document at any time:

    {"61": [44, 55, 47, ...], "14": [62, 54, 109, ...]}

Thread Safety:
    SecretVersionStore publishes an immutable snapshot. Readers always see
    either the table before a refresh or the table after it, never a mix.

Usage:
    store = SecretVersionStore()
    outcome = refresh_secrets(store, session, SECRET_DICT_URL, timeout=10)
    secret = derive_secret(store, store.latest_version())
    print(secret.base32_secret)
"""

import re
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Sequence

import requests

from spot_token.core.exceptions import (
    EmptyStoreError,
    InvalidSecretPayloadError,
    InvalidTotpVersionError,
    SpotTokenError,
    UnknownSecretVersionError,
)
from spot_token.core.logger import get_logger
from spot_token.totp import base32
from spot_token.webplayer.session import send


logger = get_logger(__name__)

# Version keys in the remote document are plain decimal strings
VERSION_KEY_PATTERN = re.compile(r"[0-9]+")

# Built-in secret versions available before any remote refresh
DEFAULT_SECRETS: dict[int, tuple[int, ...]] = {
    13: (59, 92, 64, 70, 99, 78, 117, 75, 99, 103, 116, 67, 103, 51, 87, 63, 93, 59, 70, 45, 32),
    14: (62, 54, 109, 83, 107, 77, 41, 103, 45, 93, 114, 38, 41, 97, 64, 51, 95, 94, 95, 94),
    61: (
        44, 55, 47, 42, 70, 40, 34, 114, 76, 74, 50, 111, 120, 97, 75, 76,
        94, 102, 43, 69, 49, 120, 118, 80, 64, 78,
    ),
}


@dataclass(frozen=True)
class CipherEntry:
    """
    One secret version.

    Attributes:
        version: Secret version number.
        cipher_bytes: Published cipher values. Usually 0-255, but values
                      outside a byte are accepted and reduced modulo 256
                      during derivation.
    """
    version: int
    cipher_bytes: tuple[int, ...]


@dataclass(frozen=True)
class DerivedSecret:
    """
    A TOTP shared secret derived from a cipher entry.

    Attributes:
        version: Secret version the secret was derived from.
        base32_secret: Unpadded base32 secret for TOTP generation.
    """
    version: int
    base32_secret: str


@dataclass(frozen=True)
class RefreshOutcome:
    """
    Result of a best-effort secret refresh.

    A failed refresh is not an exception: the acquisition carries on with
    the existing table. The failure is reported here for logging.

    Attributes:
        updated: True if at least one version was added or changed.
        error: The recovered error, or None on success.
    """
    updated: bool
    error: SpotTokenError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SecretVersionStore:
    """
    Thread-safe table of secret versions.

    The table is never mutated in place. replace_all() validates the
    incoming payload, builds a new mapping, and swaps it in under a lock,
    so concurrent readers see a consistent snapshot.

    Attributes:
        _entries: Current immutable mapping of version -> CipherEntry.
        _lock: Serializes writers.
    """

    def __init__(self, seed: Mapping[int, Sequence[int]] | None = None) -> None:
        """
        Create a store seeded with secret versions.

        Args:
            seed: Mapping of version -> cipher values. Defaults to the
                  built-in versions. Pass an empty mapping to start empty.
        """
        if seed is None:
            seed = DEFAULT_SECRETS
        entries = {
            int(version): CipherEntry(int(version), tuple(values))
            for version, values in seed.items()
        }
        self._entries: Mapping[int, CipherEntry] = MappingProxyType(entries)
        self._lock = threading.Lock()

    def __contains__(self, version: object) -> bool:
        return version in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> Mapping[int, CipherEntry]:
        """Return the current read-only table."""
        return self._entries

    def versions(self) -> list[int]:
        """Return all known versions in ascending order."""
        return sorted(self._entries)

    def get(self, version: int) -> CipherEntry | None:
        """Return the entry for a version, or None if it is not known."""
        return self._entries.get(version)

    def latest_version(self) -> int:
        """
        Return the highest known version.

        Raises:
            EmptyStoreError: If the table holds no versions.
        """
        entries = self._entries
        if not entries:
            raise EmptyStoreError("Secret cipher dictionary is empty")
        return max(entries)

    def replace_all(self, payload: Any) -> bool:
        """
        Merge a remote secret document into the table.

        Every version in the payload overwrites the stored entry when its
        values differ; versions absent from the payload are kept.

        Args:
            payload: Parsed JSON document mapping version strings to lists
                     of integers.

        Returns:
            True if any version was added or changed, False otherwise.

        Raises:
            InvalidSecretPayloadError: If the payload is not a dict, a key is
                not a decimal integer string, or a value is not a list of
                integers. The table is left untouched.
        """
        incoming = parse_secret_payload(payload)

        with self._lock:
            current = self._entries
            changed = {
                version: CipherEntry(version, values)
                for version, values in incoming.items()
                if version not in current or current[version].cipher_bytes != values
            }
            if not changed:
                return False
            merged = dict(current)
            merged.update(changed)
            self._entries = MappingProxyType(merged)

        logger.debug(f"Secret versions updated: {sorted(changed)}")
        return True


def parse_secret_payload(payload: Any) -> dict[int, tuple[int, ...]]:
    """
    Validate a remote secret document into version -> cipher values.

    Raises:
        InvalidSecretPayloadError: On any structural violation. Nothing is
                                   returned for a partially valid payload.
    """
    if not isinstance(payload, dict):
        raise InvalidSecretPayloadError(
            "Secret payload is not a dictionary",
            details={"payload_type": type(payload).__name__}
        )

    parsed: dict[int, tuple[int, ...]] = {}
    for key, value in payload.items():
        if not isinstance(key, str) or not VERSION_KEY_PATTERN.fullmatch(key):
            raise InvalidSecretPayloadError(
                f"Invalid secret key: {key!r}",
                details={"key": key}
            )
        if not isinstance(value, list) or any(
            isinstance(item, bool) or not isinstance(item, int) for item in value
        ):
            raise InvalidSecretPayloadError(
                f"Invalid secret value for version {key}",
                details={"key": key}
            )
        parsed[int(key)] = tuple(value)

    return parsed


def resolve_version(store: SecretVersionStore, requested: Any = None) -> int:
    """
    Pick the secret version for an acquisition.

    Args:
        store: The secret table.
        requested: Caller-requested version, or None for the latest.

    Returns:
        A version present in the store.

    Raises:
        EmptyStoreError: If the store is empty.
        InvalidTotpVersionError: If requested is not an integer.
        UnknownSecretVersionError: If requested is not in the store.
    """
    latest = store.latest_version()
    if requested is None:
        return latest

    if isinstance(requested, bool) or not isinstance(requested, int):
        raise InvalidTotpVersionError(
            "Invalid totpVersion value",
            details={"version": requested}
        )
    if requested not in store:
        raise UnknownSecretVersionError(
            f"No secret cipher available for version {requested}",
            details={"version": requested, "available": store.versions()}
        )
    return requested


def xor_transform(cipher_bytes: Sequence[int]) -> list[int]:
    """XOR each value with ((index mod 33) + 9), reduced to a byte."""
    return [(value ^ ((index % 33) + 9)) & 0xFF for index, value in enumerate(cipher_bytes)]


def derive_secret(store: SecretVersionStore, version: int) -> DerivedSecret:
    """
    Derive the TOTP secret for a version.

    Behavior:
        1. Look up the cipher bytes for the version
        2. XOR transform every value (see xor_transform)
        3. Concatenate the decimal form of each value: [5, 130] -> "5130"
        4. Base32 encode the ASCII digit string and drop the padding

    Raises:
        UnknownSecretVersionError: If the version is not in the store.
    """
    entry = store.get(version)
    if entry is None:
        raise UnknownSecretVersionError(
            f"Missing cipher bytes for version {version}",
            details={"version": version, "available": store.versions()}
        )

    digits = "".join(str(value) for value in xor_transform(entry.cipher_bytes))
    secret = base32.strip_padding(base32.encode(digits.encode("ascii")))
    return DerivedSecret(version=version, base32_secret=secret)


def fetch_secret_document(session: requests.Session, url: str, timeout: float) -> Any:
    """
    Download the remote secret document.

    Raises:
        NetworkError: On transport failure.
        InvalidSecretPayloadError: On a non-2xx status or a non-JSON body.
    """
    response = send(
        session, "GET", url, timeout,
        headers={"Cache-Control": "no-cache", "Pragma": "no-cache"}
    )
    if not response.ok:
        raise InvalidSecretPayloadError(
            f"Failed to download secrets: {response.status_code}",
            details={"url": url, "status_code": response.status_code}
        )
    try:
        return response.json()
    except ValueError as e:
        raise InvalidSecretPayloadError(
            "Secret document is not valid JSON",
            details={"url": url, "original_error": str(e)}
        ) from e


def refresh_secrets(
    store: SecretVersionStore,
    session: requests.Session,
    url: str,
    timeout: float
) -> RefreshOutcome:
    """
    Refresh the store from the remote document, recovering from any failure.

    A stale table is preferable to a blocked acquisition, so network and
    payload errors are logged as warnings and returned, not raised.
    """
    try:
        updated = store.replace_all(fetch_secret_document(session, url, timeout))
    except SpotTokenError as e:
        logger.warning(f"Failed to refresh secret dictionary: {e.message}")
        return RefreshOutcome(updated=False, error=e)

    if updated:
        logger.info(f"Secret dictionary refreshed, latest version {store.latest_version()}")
    return RefreshOutcome(updated=updated)

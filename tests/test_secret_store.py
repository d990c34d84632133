"""Test the secret version table, derivation and remote refresh"""

import threading

import pytest
import requests

from spot_token.core.exceptions import (
    EmptyStoreError,
    InvalidSecretPayloadError,
    InvalidTotpVersionError,
    NetworkError,
    UnknownSecretVersionError,
)
from spot_token.totp import base32
from spot_token.webplayer.secret_store import (
    DEFAULT_SECRETS,
    SecretVersionStore,
    derive_secret,
    parse_secret_payload,
    refresh_secrets,
    resolve_version,
    xor_transform,
)

SECRETS_URL = "https://example.com/secretDict.json"


class TestSecretVersionStore:
    """Test SecretVersionStore"""

    def test_default_seed(self):
        """A store without a seed holds the built-in versions"""
        store = SecretVersionStore()
        assert store.versions() == [13, 14, 61]
        assert store.latest_version() == 61
        assert 14 in store
        assert len(store) == 3

    def test_empty_seed(self):
        store = SecretVersionStore({})
        assert len(store) == 0
        with pytest.raises(EmptyStoreError):
            store.latest_version()

    def test_get_unknown_version(self, store):
        assert store.get(99) is None

    def test_replace_all_adds_and_keeps_versions(self, store):
        """Versions missing from the payload are kept"""
        assert store.replace_all({"70": [1, 2, 3]}) is True
        assert store.versions() == [13, 14, 61, 70]
        assert store.get(70).cipher_bytes == (1, 2, 3)
        assert store.latest_version() == 70

    def test_replace_all_overwrites_changed_version(self, store):
        assert store.replace_all({"14": [9, 9]}) is True
        assert store.get(14).cipher_bytes == (9, 9)

    def test_replace_all_unchanged(self, store):
        """Re-applying identical data reports no update"""
        current = list(store.get(61).cipher_bytes)
        assert store.replace_all({"61": current}) is False
        assert store.replace_all({}) is False

    @pytest.mark.parametrize("payload", [
        ["not", "a", "dict"],
        {"v14": [1, 2]},
        {"-1": [1, 2]},
        {"14\n": [1, 2, 3]},
        {"١٤": [1, 2, 3]},
        {" 14": [1, 2]},
        {"14": "1,2"},
        {"14": [1, "2"]},
        {"14": [1, True]},
        {"14": [1.5]},
    ])
    def test_replace_all_rejects_invalid_payload(self, store, payload):
        """Invalid payloads raise and leave the table untouched"""
        before = store.snapshot()
        with pytest.raises(InvalidSecretPayloadError):
            store.replace_all(payload)
        assert store.snapshot() is before

    def test_partially_invalid_payload_is_rejected_whole(self, store):
        with pytest.raises(InvalidSecretPayloadError):
            store.replace_all({"70": [1, 2], "bad": [3]})
        assert 70 not in store

    def test_snapshot_is_immutable(self, store):
        snapshot = store.snapshot()
        with pytest.raises(TypeError):
            snapshot[99] = None

    def test_snapshot_survives_replace(self, store):
        """Readers holding a snapshot never see a later update"""
        snapshot = store.snapshot()
        store.replace_all({"70": [1]})
        assert 70 not in snapshot
        assert 70 in store.snapshot()

    def test_concurrent_replace(self, store):
        """Concurrent writers all land, none is lost"""
        def writer(version):
            store.replace_all({str(version): [version]})

        threads = [threading.Thread(target=writer, args=(100 + i,)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(100 + i in store for i in range(20))
        assert store.latest_version() == 119


class TestParseSecretPayload:
    """Test remote document validation"""

    def test_valid_payload(self):
        assert parse_secret_payload({"61": [1, 2], "14": []}) == {61: (1, 2), 14: ()}

    def test_non_string_key(self):
        with pytest.raises(InvalidSecretPayloadError):
            parse_secret_payload({61: [1, 2]})


class TestResolveVersion:
    """Test secret version selection"""

    def test_none_selects_latest(self, store):
        assert resolve_version(store, None) == 61

    def test_requested_version(self, store):
        assert resolve_version(store, 14) == 14

    @pytest.mark.parametrize("requested", ["14", 14.0, True])
    def test_non_integer_version(self, store, requested):
        with pytest.raises(InvalidTotpVersionError):
            resolve_version(store, requested)

    def test_unknown_version(self, store):
        with pytest.raises(UnknownSecretVersionError) as exc_info:
            resolve_version(store, 99)
        assert exc_info.value.details["available"] == [13, 14, 61]

    def test_empty_store(self):
        """An empty table fails even when a version is requested"""
        with pytest.raises(EmptyStoreError):
            resolve_version(SecretVersionStore({}), 14)


class TestDeriveSecret:
    """Test secret derivation"""

    def test_xor_transform_key_cycle(self):
        """The XOR key is (index mod 33) + 9"""
        transformed = xor_transform([0] * 34)
        assert transformed[0] == 9
        assert transformed[32] == 41
        assert transformed[33] == 9

    def test_xor_transform_reduces_to_byte(self):
        assert xor_transform([300]) == [37]

    def test_digits_are_concatenated(self):
        """Transformed values [5, 130] become the digit string "5130" """
        store = SecretVersionStore({1: [5 ^ 9, 130 ^ 10]})
        secret = derive_secret(store, 1)
        assert base32.decode(secret.base32_secret) == b"5130"
        assert "=" not in secret.base32_secret

    @pytest.mark.parametrize("version,expected", [
        (13, "GUYDQNRXGU3TIMJRGA3DIMJSGI4TCMJRGQYTCNZRGAZTQNZRGE2DGNZWGQZTSNRYGMZTSMZUHE3DC"),
        (14, "GU2TMMBRGAZDSNJRGAZDMNZTHAYTCOJWGA3TSOJXGUYDMMBRGE4TQNZUGM3TANRYGY4DMNQ"),
        (61, "GM3TMMJTGYZTQNZVGM4DINJZHA4TGOBYGMZTCMRTGEYDSMJRHE4TEOBUG4YTCMRUGQ4DQOJU"
             "GQYTAMRRGA2TCMJSHE3TCMBY"),
    ])
    def test_builtin_versions(self, store, version, expected):
        secret = derive_secret(store, version)
        assert secret.version == version
        assert secret.base32_secret == expected

    def test_version_14_digit_string(self, store):
        secret = derive_secret(store, 14)
        assert base32.decode(secret.base32_secret) == b"55601029510267381196079975060119874370686866"

    def test_deterministic(self, store):
        assert derive_secret(store, 61) == derive_secret(store, 61)

    def test_store_of_versions_13_and_14(self):
        """Without version 61 the latest version is 14"""
        store = SecretVersionStore({
            13: DEFAULT_SECRETS[13],
            14: DEFAULT_SECRETS[14],
        })
        assert len(store.get(13).cipher_bytes) == 21
        assert len(store.get(14).cipher_bytes) == 20
        assert store.latest_version() == 14
        assert derive_secret(store, store.latest_version()).base32_secret == (
            "GU2TMMBRGAZDSNJRGAZDMNZTHAYTCOJWGA3TSOJXGUYDMMBRGE4TQNZUGM3TANRYGY4DMNQ"
        )

    def test_missing_version(self, store):
        with pytest.raises(UnknownSecretVersionError):
            derive_secret(store, 99)


class TestRefreshSecrets:
    """Test best-effort refresh from the remote document"""

    def test_successful_refresh(self, store, session, response_factory):
        session.request.return_value = response_factory(json_data={"70": [1, 2, 3]})

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert outcome.ok
        assert outcome.updated is True
        assert store.latest_version() == 70

        args, kwargs = session.request.call_args
        assert args == ("GET", SECRETS_URL)
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Cache-Control"] == "no-cache"

    def test_unchanged_refresh(self, store, session, response_factory):
        session.request.return_value = response_factory(json_data={"14": list(store.get(14).cipher_bytes)})

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert outcome.ok
        assert outcome.updated is False

    def test_http_error_is_recovered(self, store, session, response_factory):
        session.request.return_value = response_factory(status=500)

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert not outcome.ok
        assert isinstance(outcome.error, InvalidSecretPayloadError)
        assert store.versions() == [13, 14, 61]

    def test_invalid_json_is_recovered(self, store, session, response_factory):
        session.request.return_value = response_factory(status=200, json_data=None)

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert isinstance(outcome.error, InvalidSecretPayloadError)

    def test_invalid_payload_is_recovered(self, store, session, response_factory):
        session.request.return_value = response_factory(json_data={"bad": [1]})

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert isinstance(outcome.error, InvalidSecretPayloadError)
        assert store.versions() == [13, 14, 61]

    def test_network_error_is_recovered(self, store, session):
        session.request.side_effect = requests.ConnectionError("offline")

        outcome = refresh_secrets(store, session, SECRETS_URL, timeout=5)

        assert isinstance(outcome.error, NetworkError)
        assert outcome.updated is False

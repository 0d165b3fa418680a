"""
Unit tests for basic auth credentials.
"""

import base64
import logging

import pytest

from staticserver.credentials import (
    PASSWORD_ALPHABET,
    Credential,
    CredentialStore,
    parse_authorization,
)
from staticserver.errors import ConfigurationError


def basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


class TestCredentialStore:
    """Tests for CredentialStore.initialize."""

    def test_explicit(self):
        credential = CredentialStore().initialize("alice:s3cret")
        assert credential == Credential("alice", "s3cret")

    def test_split_on_first_colon(self):
        credential = CredentialStore().initialize("alice:pa:ss:word")

        assert credential.username == "alice"
        assert credential.password == "pa:ss:word"

    def test_missing_colon_is_fatal(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CredentialStore().initialize("alice")

        assert exc_info.value.exit_code == 4

    def test_generated(self):
        credential = CredentialStore(default_username="gopher", password_length=24).initialize()

        assert credential.username == "gopher"
        assert len(credential.password) == 24
        assert set(credential.password) <= set(PASSWORD_ALPHABET)

    def test_generated_passwords_differ(self):
        store = CredentialStore()
        assert store.generate().password != store.generate().password

    def test_generated_credential_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="staticserver.credentials"):
            credential = CredentialStore().initialize()

        assert credential.password in caplog.text
        assert "gopher" in caplog.text

    def test_invalid_length(self):
        with pytest.raises(ConfigurationError):
            CredentialStore(password_length=0)


class TestCredential:

    def test_matches(self):
        credential = Credential("alice", "s3cret")

        assert credential.matches("alice", "s3cret")
        assert not credential.matches("alice", "wrong")
        assert not credential.matches("bob", "s3cret")

    def test_repr_hides_password(self):
        assert "s3cret" not in repr(Credential("alice", "s3cret"))


class TestParseAuthorization:

    def test_valid(self):
        assert parse_authorization(basic("alice", "a:b")) == ("alice", "a:b")

    def test_scheme_is_case_insensitive(self):
        header = basic("alice", "pw").replace("Basic", "basic")
        assert parse_authorization(header) == ("alice", "pw")

    @pytest.mark.parametrize("header", [
        "",
        "Bearer abc",
        "Basic",
        "Basic !!!notbase64",
        "Basic " + base64.b64encode(b"nocolon").decode(),
    ])
    def test_malformed(self, header: str):
        assert parse_authorization(header) is None

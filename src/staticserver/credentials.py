"""
=============================================================================
CREDENTIAL STORE
=============================================================================

The single username/password pair guarding the server when basic auth is
enabled.

    --set-basic-auth "alice:s3:cr3t"   → Credential("alice", "s3:cr3t")
    (nothing)                          → Credential("gopher", <random 16>)

The pair is split on the FIRST colon, so passwords may contain colons.
A generated password is never persisted anywhere; it is logged exactly
once at startup so the operator can read it from the container logs.

The Credential is frozen and lives in the startup context; worker threads
only ever read it.

=============================================================================
"""

import base64
import binascii
import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError


logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class Credential:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password='***')"

    def matches(self, username: str, password: str) -> bool:
        """Constant-time comparison of both fields."""
        user_ok = hmac.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), self.password.encode("utf-8"))
        return user_ok and password_ok


class CredentialStore:
    """
    Builds the process credential.

        store = CredentialStore(default_username="gopher", password_length=16)
        credential = store.initialize(config.basic_auth)
    """

    def __init__(self, default_username: str = "gopher", password_length: int = 16):
        if password_length < 1:
            raise ConfigurationError(f"Password length must be >= 1, got {password_length}")
        self.default_username = default_username
        self.password_length = password_length

    def initialize(self, explicit: Optional[str] = None) -> Credential:
        """
        Parse `explicit` ("user:password") or generate a random password.

        Raises:
            ConfigurationError: explicit value without a colon.
        """
        if explicit:
            return self.parse(explicit)
        return self.generate()

    @staticmethod
    def parse(value: str) -> Credential:
        username, sep, password = value.partition(":")
        if not sep:
            raise ConfigurationError("Basic auth must be given as user:password")
        return Credential(username=username, password=password)

    def generate(self) -> Credential:
        password = "".join(
            secrets.choice(PASSWORD_ALPHABET) for _ in range(self.password_length)
        )
        credential = Credential(username=self.default_username, password=password)
        logger.warning(f"Generated basic auth credentials. User: {credential.username} "
                       f"Password: {credential.password}")
        return credential


def parse_authorization(header: str) -> Optional[tuple[str, str]]:
    """
    "Basic YWxpY2U6c2VjcmV0" → ("alice", "secret"); None when malformed.
    """
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password

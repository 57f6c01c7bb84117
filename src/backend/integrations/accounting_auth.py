"""Credential material for the accounting service.

The service accepts either:
- an API token, sent as HTTP Basic auth (token as username, "X" as password)
- OAuth 1.0a tokens, signed with the PLAINTEXT method
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from urllib.parse import quote

import requests
from requests.auth import AuthBase, HTTPBasicAuth

# The service ignores the password part of Basic auth; it only has to be non-empty.
BASIC_AUTH_PASSWORD = "X"


@dataclass(frozen=True, slots=True)
class OAuthPlaintextToken:
    consumer_key: str
    consumer_secret: str
    oauth_token: str
    oauth_token_secret: str


def _pct(value: str) -> str:
    return quote(value, safe="~")


class OAuthPlaintextAuth(AuthBase):
    """Attach an `Authorization: OAuth ...` header using the PLAINTEXT signature method."""

    def __init__(self, token: OAuthPlaintextToken) -> None:
        self._token = token

    def header_value(self) -> str:
        signature = f"{_pct(self._token.consumer_secret)}&{_pct(self._token.oauth_token_secret)}"
        params = [
            ("oauth_consumer_key", self._token.consumer_key),
            ("oauth_token", self._token.oauth_token),
            ("oauth_signature_method", "PLAINTEXT"),
            ("oauth_signature", signature),
            ("oauth_timestamp", str(int(time.time()))),
            ("oauth_nonce", uuid.uuid4().hex),
            ("oauth_version", "1.0"),
        ]
        return 'OAuth realm="", ' + ", ".join(f'{k}="{_pct(v)}"' for k, v in params)

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = self.header_value()
        return r


Credentials = str | OAuthPlaintextToken


def build_auth(credentials: Credentials) -> AuthBase:
    if isinstance(credentials, OAuthPlaintextToken):
        return OAuthPlaintextAuth(credentials)
    if isinstance(credentials, str) and credentials:
        return HTTPBasicAuth(credentials, BASIC_AUTH_PASSWORD)
    raise ValueError("credentials must be a non-empty API token or an OAuthPlaintextToken")

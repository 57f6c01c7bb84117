"""Accounting service connector (XML over HTTP).

Purpose
- List clients, projects, tasks and staff, following the service's page cursor until
  every item has been fetched.
- Create or update time entries.

Each client instance keeps one accumulator per list resource. Accessors append to it
and return the whole accumulator, so calling `list_users()` twice yields every user
twice. Instances are not thread-safe; use one per thread or lock around them.

This module is intentionally independent of any web framework.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests
from dotenv import load_dotenv

from .accounting_auth import Credentials, OAuthPlaintextToken, build_auth
from .accounting_envelope import (
    CLIENTS,
    PROJECTS,
    TASKS,
    TIME_ENTRY_CREATE,
    TIME_ENTRY_UPDATE,
    USERS,
    Client,
    ListResource,
    Project,
    Task,
    TimeEntry,
    User,
    decode_list_response,
    decode_time_entry_response,
    encode_list_request,
    encode_time_entry_request,
)
from .accounting_errors import RemoteError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_DOMAIN = "example-service.com"


class AccountingClient:
    PER_PAGE = 25

    def __init__(
        self,
        account: str,
        credentials: Credentials,
        *,
        timeout_seconds: int = 30,
        service_domain: str = DEFAULT_SERVICE_DOMAIN,
    ) -> None:
        self._api_url = f"https://{account}.{service_domain}/api/2.1/xml-in"
        self._auth = build_auth(credentials)
        self._timeout_seconds = timeout_seconds
        self._per_page = self.PER_PAGE
        self._accumulators: dict[str, list[Any]] = {
            CLIENTS.name: [],
            PROJECTS.name: [],
            TASKS.name: [],
            USERS.name: [],
        }

    @classmethod
    def from_env(cls) -> "AccountingClient":
        """Build a client from ACCOUNTING_* environment variables (.env is honoured).

        An API token (ACCOUNTING_AUTH_TOKEN) wins over OAuth settings when both are set.
        """

        load_dotenv(override=False)
        account = os.environ.get("ACCOUNTING_ACCOUNT")
        if not account:
            raise ValueError("Missing ACCOUNTING_ACCOUNT")

        credentials: Credentials
        token = os.environ.get("ACCOUNTING_AUTH_TOKEN")
        if token:
            credentials = token
        else:
            oauth_keys = (
                "ACCOUNTING_CONSUMER_KEY",
                "ACCOUNTING_CONSUMER_SECRET",
                "ACCOUNTING_OAUTH_TOKEN",
                "ACCOUNTING_OAUTH_TOKEN_SECRET",
            )
            missing = [k for k in oauth_keys if not os.environ.get(k)]
            if missing:
                raise ValueError(
                    "Missing ACCOUNTING_AUTH_TOKEN (or OAuth settings: " + ", ".join(missing) + ")"
                )
            credentials = OAuthPlaintextToken(*(os.environ[k] for k in oauth_keys))

        return cls(
            account,
            credentials,
            timeout_seconds=int(os.environ.get("ACCOUNTING_HTTP_TIMEOUT_SECONDS", "30")),
            service_domain=os.environ.get("ACCOUNTING_SERVICE_DOMAIN", DEFAULT_SERVICE_DOMAIN),
        )

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def per_page(self) -> int:
        return self._per_page

    # Accumulators. These are the live lists; they keep growing across calls.

    @property
    def clients(self) -> list[Client]:
        return self._accumulators[CLIENTS.name]

    @property
    def projects(self) -> list[Project]:
        return self._accumulators[PROJECTS.name]

    @property
    def tasks(self) -> list[Task]:
        return self._accumulators[TASKS.name]

    @property
    def users(self) -> list[User]:
        return self._accumulators[USERS.name]

    def _post(self, body: bytes) -> bytes:
        try:
            resp = requests.request(
                "POST",
                self._api_url,
                data=body,
                auth=self._auth,
                headers={"Content-Type": "application/xml", "Accept": "application/xml"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as e:
            raise TransportError(f"Request to {self._api_url} failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"HTTP {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp.content

    def _fetch_all(self, resource: ListResource) -> list[Any]:
        """Fetch every page of `resource`, appending into its accumulator.

        Stops at the first failure and raises it. Items from pages that already
        succeeded stay in the accumulator.
        """

        accumulator = self._accumulators[resource.name]
        fetched = 0
        page = 1
        while True:
            logger.debug("%s page=%d per_page=%d", resource.method, page, self._per_page)
            raw = self._post(encode_list_request(resource.method, page=page, per_page=self._per_page))
            response = decode_list_response(raw)
            try:
                response.raise_for_error()
            except RemoteError as e:
                logger.warning("%s page=%d returned an error: %s", resource.method, page, e)
                raise

            result = resource.extract(response)
            accumulator.extend(result.items)
            fetched += len(result.items)

            if not result.pagination.has_more(page, default_per_page=self._per_page):
                break
            page += 1

        logger.info(
            "Fetched %d %s over %d page(s) (%d accumulated)",
            fetched,
            resource.name,
            page,
            len(accumulator),
        )
        return accumulator

    def list_clients(self) -> list[Client]:
        return self._fetch_all(CLIENTS)

    def list_projects(self) -> list[Project]:
        return self._fetch_all(PROJECTS)

    def list_tasks(self) -> list[Task]:
        return self._fetch_all(TASKS)

    def list_users(self) -> list[User]:
        return self._fetch_all(USERS)

    def save_time_entry(self, entry: TimeEntry) -> int:
        """Create (entry.id == 0) or update a time entry; return the id the service reports."""

        method = TIME_ENTRY_UPDATE if entry.id != 0 else TIME_ENTRY_CREATE
        raw = self._post(encode_time_entry_request(method, entry))
        response = decode_time_entry_response(raw)

        if response.ok:
            logger.debug("%s ok time_entry_id=%d", method, response.time_entry_id)
            return response.time_entry_id

        message = response.error or f"{method} failed (status={response.status!r})"
        logger.warning("%s failed: %s (code=%s field=%s)", method, message, response.code, response.field)
        raise RemoteError(message, code=response.code or None, field=response.field or None)

"""RSC session context: endpoint, bearer header and instance identifier.

A session is created once by :meth:`RSCSession.connect` (or directly from a
token) and then passed explicitly to every report and mutation. Nothing in
the toolkit mutates it afterwards.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx

from rsc_report.api_client import GraphQLClient
from rsc_report.config import RSCSettings
from rsc_report.errors import SessionError

logger = logging.getLogger(__name__)

_REQUIRED_SERVICE_ACCOUNT_KEYS = ("client_id", "client_secret", "access_token_uri")


@dataclass(frozen=True)
class RSCSession:
    """Read-only connection context for one RSC instance."""

    url: str
    access_token: str = field(repr=False)
    timeout: float = 60.0
    verify_ssl: bool = True

    @property
    def instance(self) -> str:
        """Instance identifier (the RSC hostname, e.g. ``acme.my.rubrik.com``)."""
        return urlparse(self.url).hostname or self.url

    @property
    def graphql_endpoint(self) -> str:
        return f"{self.url}/api/graphql"

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def client(self, verbose: bool = False, transport: httpx.BaseTransport | None = None) -> GraphQLClient:
        """Create a GraphQL client bound to this session."""
        return GraphQLClient(
            self.graphql_endpoint,
            headers=self.headers,
            timeout=self.timeout,
            verify=self.verify_ssl,
            verbose=verbose,
            transport=transport,
        )

    @classmethod
    def connect(
        cls,
        settings: RSCSettings,
        transport: httpx.BaseTransport | None = None,
    ) -> "RSCSession":
        """Establish a session from settings.

        Uses ``access_token`` as-is when present, otherwise exchanges client
        credentials (from the settings or the service account file) for a token.
        """
        if settings.access_token:
            if not settings.url:
                raise SessionError("RSC URL required when using an access token")
            return cls(settings.url, settings.access_token, settings.timeout, settings.verify_ssl)

        if settings.service_account_file:
            account = load_service_account(settings.service_account_file)
            token_uri = account["access_token_uri"]
            client_id, client_secret = account["client_id"], account["client_secret"]
            url = token_uri.replace("/api/client_token", "").rstrip("/")
        elif settings.client_id and settings.client_secret and settings.url:
            url = settings.url
            token_uri = f"{url}/api/client_token"
            client_id, client_secret = settings.client_id, settings.client_secret
        else:
            raise SessionError(
                "No RSC credentials. Set RSC_SERVICE_ACCOUNT_FILE, or RSC_URL with "
                "RSC_CLIENT_ID/RSC_CLIENT_SECRET, or RSC_ACCESS_TOKEN."
            )

        token = request_access_token(
            token_uri,
            client_id,
            client_secret,
            timeout=settings.timeout,
            verify=settings.verify_ssl,
            transport=transport,
        )
        logger.info(f"Connected to RSC instance: {url}")
        return cls(url, token, settings.timeout, settings.verify_ssl)


def load_service_account(path: Path) -> dict[str, Any]:
    """Read and validate an RSC service account JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise SessionError(f"Service account file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise SessionError(f"Service account file is not valid JSON: {e}") from e

    missing = [k for k in _REQUIRED_SERVICE_ACCOUNT_KEYS if not data.get(k)]
    if missing:
        raise SessionError(f"Service account file is missing required keys: {missing}")
    return data


def request_access_token(
    token_uri: str,
    client_id: str,
    client_secret: str,
    timeout: float = 60.0,
    verify: bool = True,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Exchange client credentials for a bearer token."""
    payload = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
    }
    try:
        with httpx.Client(timeout=timeout, verify=verify, transport=transport) as client:
            response = client.post(token_uri, json=payload, headers={"Accept": "application/json"})
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise SessionError(f"Failed to authenticate against {token_uri}: {e}") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        raise SessionError("Authentication failed: no access_token in response")
    return token

# Copyright (c) 2026 rsc-report contributors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""API client for communicating with the RSC GraphQL endpoint."""

import logging
from json.decoder import JSONDecodeError
from typing import Any

import httpx

from rsc_report.errors import GraphQLTransportError


class GraphQLClient:
    """Blocking client that POSTs GraphQL documents to a single endpoint.

    The client never retries. Transport problems (connection errors, HTTP
    status >= 400, non-JSON bodies) raise :class:`GraphQLTransportError`;
    a 200 response is returned as-is, including any top-level ``errors``.
    """

    def __init__(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
        verify: bool = True,
        verbose: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the API client."""
        self.endpoint = endpoint
        self.logger = logging.getLogger(__name__)

        # Suppress httpx HTTP request logging unless verbose
        if not verbose:
            logging.getLogger("httpx").setLevel(logging.WARNING)

        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        }
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers=self.headers,
            verify=verify,
            transport=transport,
        )

    def post(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Send one GraphQL request and return the decoded body."""
        payload: dict[str, Any] = {"query": query, "variables": variables or {}}
        if operation_name:
            payload["operationName"] = operation_name

        self.logger.debug(f"POST {self.endpoint} operation={operation_name} variables={variables}")
        try:
            response = self.client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise GraphQLTransportError(f"Request to {self.endpoint} failed: {e}") from e

        if response.status_code == 401:
            raise GraphQLTransportError("Unauthorized - check your RSC credentials", 401)
        if response.status_code == 403:
            raise GraphQLTransportError("Forbidden - insufficient permissions", 403)
        if response.status_code >= 400:
            raise GraphQLTransportError(
                f"API error: {response.status_code}",
                response.status_code,
                response.text,
            )

        try:
            body = response.json()
        except JSONDecodeError as e:
            raise GraphQLTransportError(
                "Response was not valid JSON", response.status_code, response.text
            ) from e

        if not isinstance(body, dict):
            raise GraphQLTransportError(
                "Unexpected response shape", response.status_code, response.text
            )
        return body

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "GraphQLClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()


def first_error_message(body: dict[str, Any]) -> str | None:
    """Return the first ``errors[].message`` of a GraphQL response body, if any."""
    errors = body.get("errors")
    if not errors:
        return None
    if isinstance(errors, list):
        first = errors[0]
        if isinstance(first, dict):
            return str(first.get("message", first))
        return str(first)
    return str(errors)

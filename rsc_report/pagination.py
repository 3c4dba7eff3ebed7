"""Cursor-following executor for paginated GraphQL connections."""

import logging
from collections.abc import Iterator
from typing import Any

from tqdm import tqdm

from rsc_report.api_client import GraphQLClient, first_error_message
from rsc_report.errors import GraphQLTransportError, RSCReportError
from rsc_report.mapper import resolve_path
from rsc_report.models import QueryDescriptor

logger = logging.getLogger(__name__)


class PageCollection(list):
    """Nodes accumulated across pages, in server order.

    ``complete`` is False when pagination stopped on an error; ``error`` then
    holds the message and the list holds whatever was fetched before it.
    """

    def __init__(self, nodes: list[dict[str, Any]] | None = None) -> None:
        super().__init__(nodes or [])
        self.pages_fetched = 0
        self.complete = True
        self.error: str | None = None


class Page:
    """One decoded page of a connection."""

    def __init__(self, nodes: list[dict[str, Any]], has_next_page: bool, end_cursor: str | None):
        self.nodes = nodes
        self.has_next_page = has_next_page
        self.end_cursor = end_cursor


def extract_page(body: dict[str, Any], connection_path: str) -> Page:
    """Read nodes and pageInfo from a response body.

    Nodes come from ``edges[].node``, or from ``nodes`` when the connection
    exposes that shortcut instead.
    """
    connection = resolve_path(body.get("data") or {}, connection_path)
    if not isinstance(connection, dict):
        raise RSCReportError(f"Connection '{connection_path}' not found in response")

    edges = connection.get("edges")
    if isinstance(edges, list):
        nodes = [e["node"] for e in edges if isinstance(e, dict) and e.get("node") is not None]
    else:
        nodes = [n for n in (connection.get("nodes") or []) if n is not None]

    page_info = connection.get("pageInfo") or {}
    return Page(nodes, bool(page_info.get("hasNextPage")), page_info.get("endCursor"))


def iter_pages(
    client: GraphQLClient,
    descriptor: QueryDescriptor,
    max_pages: int | None = None,
) -> Iterator[Page]:
    """
    Yield pages until ``hasNextPage`` is false.

    The cursor sent with request K+1 is exactly the ``endCursor`` of response
    K. A page claiming more results without an ``endCursor`` ends the loop.

    Raises:
        GraphQLTransportError: the HTTP call failed
        RSCReportError: the body carried GraphQL errors or no connection
    """
    cursor: str | None = None
    pages = 0

    while True:
        body = client.post(
            descriptor.query,
            descriptor.page_variables(cursor),
            operation_name=descriptor.operation_name,
        )
        message = first_error_message(body)
        if message:
            raise RSCReportError(f"GraphQL error in {descriptor.operation_name}: {message}")

        page = extract_page(body, descriptor.connection_path)
        pages += 1
        yield page

        if not page.has_next_page:
            break
        if not page.end_cursor:
            logger.warning(
                f"{descriptor.operation_name}: hasNextPage set without endCursor, stopping"
            )
            break
        if max_pages is not None and pages >= max_pages:
            logger.debug(f"{descriptor.operation_name}: stopping at max_pages={max_pages}")
            break
        cursor = page.end_cursor


def fetch_all_nodes(
    client: GraphQLClient,
    descriptor: QueryDescriptor,
    max_pages: int | None = None,
    raise_on_error: bool = False,
    progress: bool = False,
) -> PageCollection:
    """Fetch every node of a paginated query.

    No retries and no dedup. On a transport or GraphQL error the loop stops,
    the error is logged, and the nodes collected so far are returned in an
    incomplete :class:`PageCollection` (or the error is re-raised when
    ``raise_on_error`` is set).
    """
    collected = PageCollection()
    logger.info(f"Querying API: {descriptor.operation_name}")

    pbar = tqdm(
        total=None,
        desc=f"Fetching {descriptor.operation_name}",
        ncols=100,
        bar_format="{desc} |{bar}| {n_fmt} records",
        disable=not progress,
    )
    try:
        for page in iter_pages(client, descriptor, max_pages=max_pages):
            collected.extend(page.nodes)
            collected.pages_fetched += 1
            pbar.update(len(page.nodes))
            logger.debug(
                f"Pagination: page {collected.pages_fetched}, {len(collected)} records so far"
            )
    except (GraphQLTransportError, RSCReportError) as e:
        if raise_on_error:
            raise
        collected.complete = False
        collected.error = str(e)
        logger.error(
            f"Error during pagination of {descriptor.operation_name} after "
            f"{collected.pages_fetched} page(s): {e}. Returning {len(collected)} records."
        )
    finally:
        pbar.close()

    logger.info(f"Total records fetched: {len(collected)}")
    return collected

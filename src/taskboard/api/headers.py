"""Response headers for paged reads and entity mutations.

Paged responses carry ``X-Total-Count`` and an RFC 5988 ``Link`` header with
``next``, ``prev``, ``first`` and ``last`` relations. Mutations carry an alert
header naming what happened and a params header with the affected id.
"""

from __future__ import annotations

from starlette.datastructures import URL

from taskboard.models.page import Page

ALERT_HEADER = "X-Taskboard-Alert"
ERROR_HEADER = "X-Taskboard-Error"
PARAMS_HEADER = "X-Taskboard-Params"
TOTAL_COUNT_HEADER = "X-Total-Count"

_APP = "taskboard"


def pagination_headers(url: URL, page: Page) -> dict[str, str]:
    """Build ``X-Total-Count`` and ``Link`` for one page of results.

    Every link keeps the request's other query parameters (``query`` on
    search) and swaps in its own ``page`` and ``size``.
    """
    last_page = max(page.total_pages - 1, 0)
    links: list[str] = []
    if page.has_next:
        links.append(_link(url, page.page + 1, page.size, "next"))
    if page.has_previous:
        links.append(_link(url, page.page - 1, page.size, "prev"))
    links.append(_link(url, last_page, page.size, "last"))
    links.append(_link(url, 0, page.size, "first"))
    return {
        TOTAL_COUNT_HEADER: str(page.total_elements),
        "Link": ",".join(links),
    }


def _link(url: URL, page: int, size: int, rel: str) -> str:
    target = url.include_query_params(page=page, size=size)
    return f'<{target}>; rel="{rel}"'


def alert_headers(entity_name: str, action: str, param: object) -> dict[str, str]:
    """Alert for a successful mutation, e.g. ``taskboard.task.created``."""
    return {
        ALERT_HEADER: f"{_APP}.{entity_name}.{action}",
        PARAMS_HEADER: str(param),
    }


def failure_headers(entity_name: str, error_key: str) -> dict[str, str]:
    """Alert for a rejected request, e.g. ``error.idexists``."""
    return {
        ERROR_HEADER: f"error.{error_key}",
        PARAMS_HEADER: entity_name,
    }

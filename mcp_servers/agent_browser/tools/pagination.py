"""Shared limit/offset pagination for list-style tools."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..response import Response

DEFAULT_LIMIT = 100


def paginate_lines(
    response: Response,
    params: dict[str, Any],
    lines: list[str],
    *,
    label: str,
    noun: str,
    more: str = "results",
) -> None:
    """Add one page of ``lines`` to the response.

    Without caller-supplied bounds the whole list is rendered, unless it is over
    the token budget, in which case only pagination advice is emitted.
    """
    requested = int(params.get("limit") or 0)
    # A limit of zero or less counts as no limit.
    bounded = requested > 0 or params.get("offset") is not None
    limit = requested if requested > 0 else DEFAULT_LIMIT
    offset = max(0, int(params.get("offset") or 0))

    if not bounded:
        check = response.check_token_limit("\n".join(lines))
        if check.needs_pagination:
            response.add_pagination_warning(check.total_pages or 1)
            return

    page = lines[offset : offset + limit]
    if not page:
        response.add_result(f"No {noun} found in the specified range.")
        return

    if bounded:
        response.add_result(f"{label} {offset + 1}-{offset + len(page)} of {len(lines)}:")
    for line in page:
        response.add_result(line)

    if offset + limit < len(lines):
        hint = json.dumps({"limit": limit, "offset": offset + limit})
        response.add_result(f"\n📄 More {more} available. Next page: {hint}")


__all__ = ["DEFAULT_LIMIT", "paginate_lines"]

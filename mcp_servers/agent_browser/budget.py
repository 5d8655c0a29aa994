"""Token budget estimation for tool responses.

One token is approximated as four characters. The ceiling sits below the 25k
hard limit of the downstream MCP client so our own truncation always wins.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

TOKEN_LIMIT = 22_000
CHARS_PER_TOKEN = 4

# Truncated snapshots keep 80% of the budget so the warning block still fits.
SNAPSHOT_TRUNCATION_CHARS = int(TOKEN_LIMIT * CHARS_PER_TOKEN * 0.8)
# Last-resort cut applied to the fully rendered response.
EMERGENCY_TRUNCATION_CHARS = int(TOKEN_LIMIT * CHARS_PER_TOKEN * 0.9)


@dataclass(frozen=True)
class BudgetCheck:
    needs_pagination: bool
    estimated_tokens: int
    total_pages: int | None = None
    message: str | None = None


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def check_token_limit(text: str, *, limit: int = TOKEN_LIMIT) -> BudgetCheck:
    """Compare the estimated size of ``text`` against the token ceiling."""
    tokens = estimate_tokens(text)
    if tokens <= limit:
        return BudgetCheck(needs_pagination=False, estimated_tokens=tokens)
    total_pages = math.ceil(tokens / limit)
    return BudgetCheck(
        needs_pagination=True,
        estimated_tokens=tokens,
        total_pages=total_pages,
        message=(
            f"⚠️ Output too large (~{tokens:,} tokens), exceeds limit ({limit:,} tokens). "
            f"Needs {total_pages} pages."
        ),
    )


__all__ = [
    "CHARS_PER_TOKEN",
    "EMERGENCY_TRUNCATION_CHARS",
    "SNAPSHOT_TRUNCATION_CHARS",
    "TOKEN_LIMIT",
    "BudgetCheck",
    "check_token_limit",
    "estimate_tokens",
]

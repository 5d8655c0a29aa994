"""Agent loop failures, distinguishable by type."""

from __future__ import annotations


class AgentLoopError(Exception):
    pass


class ProviderCallError(AgentLoopError):
    """The model call failed; the run is over and must be retried from scratch."""

    def __init__(self, turn: int, collected_results: int, cause: BaseException) -> None:
        super().__init__(f"Provider call failed on turn {turn} ({collected_results} tool results collected): {cause}")
        self.turn = turn
        self.collected_results = collected_results
        self.cause = cause


class StalledAgentError(AgentLoopError):
    """The model answered without tool calls and without calling ``done``."""

    def __init__(self, turn: int, text: str = "") -> None:
        super().__init__(f"Agent stalled on turn {turn}: no tool calls and no completion signal")
        self.turn = turn
        self.text = text


class TurnLimitError(AgentLoopError):
    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Agent did not finish within {max_turns} turns")
        self.max_turns = max_turns


class AgentCancelledError(AgentLoopError):
    def __init__(self, turn: int) -> None:
        super().__init__(f"Agent run cancelled before turn {turn}")
        self.turn = turn


__all__ = [
    "AgentCancelledError",
    "AgentLoopError",
    "ProviderCallError",
    "StalledAgentError",
    "TurnLimitError",
]

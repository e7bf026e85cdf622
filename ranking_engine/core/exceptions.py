"""Error taxonomy for the ranking engine.

None of these are fatal to the engine as a whole: the reconciler recovers from
missing or inconsistent data per leader and drops stale submissions.
"""

from typing import Any


class RankingEngineError(Exception):
    """Base class for ranking engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({context})"


class MissingDataError(RankingEngineError):
    """Raw metrics or history are absent for a leader."""

    def __init__(self, leader_id: str, missing: str) -> None:
        super().__init__(
            f"Missing {missing} for leader {leader_id}",
            {"leader_id": leader_id, "missing": missing},
        )
        self.leader_id = leader_id
        self.missing = missing


class StaleSubmissionError(RankingEngineError):
    """A submission's version stamp precedes the published one."""

    def __init__(self, version: int, published_version: int, leader_id: str | None = None) -> None:
        details: dict[str, Any] = {"version": version, "published_version": published_version}
        if leader_id is not None:
            details["leader_id"] = leader_id
        super().__init__("Stale submission", details)
        self.version = version
        self.published_version = published_version
        self.leader_id = leader_id


class InconsistentHistoryError(RankingEngineError):
    """History cannot be put in chronological order or belongs to another leader."""

    def __init__(self, reason: str, leader_id: str | None = None) -> None:
        details = {"leader_id": leader_id} if leader_id is not None else None
        super().__init__(f"Inconsistent history: {reason}", details)
        self.reason = reason
        self.leader_id = leader_id

"""Canonical leaderboard state and its single-writer reconciliation.

Full refreshes (pull) and incremental updates (push) both derive leader
snapshots outside the lock, then stamp-check, merge, rank and publish inside
it. Readers only ever see a complete, validated RankedCohort.
"""

import asyncio
from collections.abc import Callable, Iterable
from types import MappingProxyType

import structlog

from ranking_engine.core.exceptions import (
    InconsistentHistoryError,
    MissingDataError,
    StaleSubmissionError,
)
from ranking_engine.schemas.leader import ContributionEvent, LeaderSnapshot, RawMetrics
from ranking_engine.schemas.leaderboard import RankedCohort
from ranking_engine.services.rank_service import (
    PreviousRankIndex,
    apply_rank_changes,
    build_rank_index,
    rank_cohort,
    same_standings,
)
from ranking_engine.services.scoring_service import ScoringService

logger = structlog.get_logger()

CohortListener = Callable[[RankedCohort, RankedCohort], None]


class LeaderboardReconciler:
    """Owns the canonical RankedCohort and PreviousRankIndex."""

    def __init__(self, scoring: ScoringService | None = None) -> None:
        self.scoring = scoring or ScoringService()
        self._lock = asyncio.Lock()
        self._last_issued = 0
        self._cohort = RankedCohort()
        self._previous_index: PreviousRankIndex = MappingProxyType({})
        # Published stamp per leader and of the last accepted full refresh
        self._leader_versions: dict[str, int] = {}
        self._refresh_version = 0
        self._listeners: list[CohortListener] = []

    @property
    def cohort(self) -> RankedCohort:
        """The current canonical cohort. Immutable, safe to hand out."""
        return self._cohort

    @property
    def previous_rank_index(self) -> PreviousRankIndex:
        return self._previous_index

    def issue_version(self) -> int:
        """Hand out the next monotonic version stamp.

        Take the stamp before reading external history so that the
        submission is ordered by when its data was read.
        """
        self._last_issued += 1
        return self._last_issued

    def _claim(self, version: int | None) -> int:
        if version is None:
            return self.issue_version()
        self._last_issued = max(self._last_issued, version)
        return version

    def subscribe(self, listener: CohortListener) -> Callable[[], None]:
        """Register a listener called with (previous, current) after each publish."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # Full refresh
    # =========================================================================

    async def submit_full_refresh(
        self,
        raw_snapshots: Iterable[LeaderSnapshot],
        version: int | None = None,
    ) -> RankedCohort:
        """Recompute every leader, re-rank and publish the result."""
        version = self._claim(version)
        derived: dict[str, LeaderSnapshot] = {}
        failed: list[str] = []
        for raw in raw_snapshots:
            try:
                derived[raw.id] = self.scoring.derive_snapshot(raw)
            except (MissingDataError, InconsistentHistoryError) as exc:
                logger.warning("Leader recomputation failed", leader_id=raw.id, error=str(exc))
                derived.pop(raw.id, None)
                failed.append(raw.id)

        async with self._lock:
            try:
                self._check_refresh(version)
            except StaleSubmissionError as exc:
                logger.warning("Discarding superseded full refresh", **exc.details)
                return self._cohort

            current = {leader.id: leader for leader in self._cohort.leaders}
            versions = {leader_id: version for leader_id in derived}
            merged = dict(derived)

            for leader_id in failed:
                if leader_id in merged:
                    continue
                previous = current.get(leader_id)
                if previous is None:
                    logger.warning("Leader left out of cohort, no previous values", leader_id=leader_id)
                    continue
                merged[leader_id] = previous
                versions[leader_id] = self._leader_versions.get(leader_id, 0)
                logger.info("Retained previous values for leader", leader_id=leader_id)

            # Incremental updates published after this refresh started win
            for leader_id, published in self._leader_versions.items():
                if published > version and leader_id in current:
                    merged[leader_id] = current[leader_id]
                    versions[leader_id] = published

            self._publish(merged.values(), version, versions)
            self._refresh_version = version

            logger.info(
                "Full refresh published",
                version=version,
                leaders=len(self._cohort),
                retained=len([leader_id for leader_id in failed if leader_id in merged]),
            )
            return self._cohort

    def _check_refresh(self, version: int) -> None:
        if version < self._refresh_version:
            raise StaleSubmissionError(version, self._refresh_version)

    # =========================================================================
    # Incremental update
    # =========================================================================

    async def submit_incremental_update(
        self,
        leader_id: str,
        raw_metrics: RawMetrics | None,
        history: Iterable[ContributionEvent] | None,
        *,
        version: int | None = None,
        name: str | None = None,
        team: str | None = None,
    ) -> LeaderSnapshot | None:
        """Recompute one leader, re-rank and publish.

        Returns the leader's published snapshot. Stale or unusable
        submissions leave the cohort untouched and return the leader's
        current snapshot, or None when it is not ranked.
        """
        version = self._claim(version)
        known = self._cohort.get(leader_id)
        raw = LeaderSnapshot(
            id=leader_id,
            name=name if name is not None else (known.name if known else ""),
            team=team if team is not None else (known.team if known else ""),
            raw_metrics=raw_metrics,
            history=tuple(history) if history is not None else None,
        )
        try:
            derived = self.scoring.derive_snapshot(raw)
        except (MissingDataError, InconsistentHistoryError) as exc:
            logger.warning("Incremental update not applied", leader_id=leader_id, error=str(exc))
            return self._cohort.get(leader_id)

        async with self._lock:
            try:
                self._check_leader(leader_id, version)
            except StaleSubmissionError as exc:
                logger.warning("Dropping stale incremental update", **exc.details)
                return self._cohort.get(leader_id)

            merged = {leader.id: leader for leader in self._cohort.leaders}
            merged[leader_id] = derived
            versions = dict(self._leader_versions)
            versions[leader_id] = version
            self._publish(merged.values(), version, versions)

            logger.info("Incremental update published", leader_id=leader_id, version=version)
            return self._cohort.get(leader_id)

    def _check_leader(self, leader_id: str, version: int) -> None:
        # Leaders missing from the cohort answer to the last full refresh
        published = self._leader_versions.get(leader_id, self._refresh_version)
        if version < published:
            raise StaleSubmissionError(version, published, leader_id=leader_id)

    # =========================================================================
    # Publish
    # =========================================================================

    def _publish(
        self,
        snapshots: Iterable[LeaderSnapshot],
        version: int,
        versions: dict[str, int],
    ) -> None:
        """Rank, validate and swap in a new canonical cohort. Lock must be held.

        A candidate with the same standings as the canonical cohort is not
        published: the cohort, its version, the previous rank index and the
        reported rank changes all stay as they are.
        """
        ranked = rank_cohort(snapshots, version=max(version, self._cohort.version))
        if same_standings(ranked, self._cohort):
            self._leader_versions = {leader.id: versions[leader.id] for leader in ranked.leaders}
            logger.debug("Standings unchanged, nothing published", version=self._cohort.version)
            return

        held = {leader.id: leader.rank_change for leader in self._cohort.leaders}
        candidate = apply_rank_changes(ranked, self._previous_index, held)

        previous = self._cohort
        self._cohort = candidate
        self._previous_index = build_rank_index(candidate)
        self._leader_versions = {leader.id: versions[leader.id] for leader in candidate.leaders}

        for listener in list(self._listeners):
            try:
                listener(previous, candidate)
            except Exception:
                logger.exception("Cohort listener failed", version=candidate.version)

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from ranking_engine.schemas.leader import LeaderSnapshot
from ranking_engine.schemas.leaderboard import RankedCohort, cohort_sort_key

PreviousRankIndex = Mapping[str, int]


def rank_cohort(snapshots: Iterable[LeaderSnapshot], version: int = 0) -> RankedCohort:
    """Sort snapshots by overall descending with id as the tie-break."""
    return RankedCohort(version=version, leaders=tuple(sorted(snapshots, key=cohort_sort_key)))


def build_rank_index(cohort: RankedCohort) -> PreviousRankIndex:
    """Map each leader id to its 0-based position in the cohort."""
    return MappingProxyType({leader.id: index for index, leader in enumerate(cohort.leaders)})


def compute_rank_change(
    cohort: RankedCohort,
    previous_index: PreviousRankIndex,
    leader_id: str,
) -> int | None:
    """Positions gained since the previous cohort.

    Positive means the leader moved up, 0 unchanged, None that the leader
    had no previous rank.
    """
    current = cohort.position(leader_id)
    if current is None:
        raise KeyError(leader_id)
    previous = previous_index.get(leader_id)
    if previous is None:
        return None
    return previous - current


def apply_rank_changes(
    cohort: RankedCohort,
    previous_index: PreviousRankIndex,
    held_changes: Mapping[str, int | None] | None = None,
) -> RankedCohort:
    """Return the cohort with every leader's rank change filled in.

    A leader that kept its position reports the change it already showed in
    ``held_changes`` (when known) instead of 0, so a movement stays visible
    until the leader moves again.
    """
    held_changes = held_changes or {}
    positions = build_rank_index(cohort)
    leaders = []
    for leader in cohort.leaders:
        previous = previous_index.get(leader.id)
        change = None if previous is None else previous - positions[leader.id]
        if change == 0 and held_changes.get(leader.id) is not None:
            change = held_changes[leader.id]
        leaders.append(leader.model_copy(update={"rank_change": change}))
    return RankedCohort(version=cohort.version, leaders=tuple(leaders))


def same_standings(left: RankedCohort, right: RankedCohort) -> bool:
    """True when both cohorts hold the same leaders, in the same order, with
    the same inputs and derived values. Rank changes and versions are ignored.
    """
    if len(left) != len(right):
        return False
    return all(
        a.model_copy(update={"rank_change": None}) == b.model_copy(update={"rank_change": None})
        for a, b in zip(left.leaders, right.leaders)
    )

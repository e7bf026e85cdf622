import asyncio
from datetime import datetime

import pytest
from pydantic import ValidationError

from ranking_engine.schemas.leader import ContributionEvent, ContributionKind, LeaderSnapshot, RawMetrics
from ranking_engine.schemas.leaderboard import RankedCohort
from ranking_engine.services.leaderboard_service import LeaderboardReconciler


def ids(cohort: RankedCohort) -> list[str]:
    return [leader.id for leader in cohort.leaders]


def derived(cohort: RankedCohort, leader_id: str) -> tuple:
    leader = cohort.get(leader_id)
    return (leader.overall, leader.consistency_score, leader.momentum, leader.trend)


@pytest.fixture
def reconciler() -> LeaderboardReconciler:
    return LeaderboardReconciler()


class TestFullRefresh:
    """Tests for the pull-based full refresh path."""

    @pytest.mark.asyncio
    async def test_ranks_and_marks_new_entrants(self, reconciler, make_leader) -> None:
        cohort = await reconciler.submit_full_refresh(
            [make_leader("c", 65), make_leader("a", 70), make_leader("b", 65)]
        )
        assert ids(cohort) == ["a", "b", "c"]
        assert [leader.overall for leader in cohort.leaders] == [70, 65, 65]
        assert all(leader.rank_change is None for leader in cohort.leaders)
        assert reconciler.cohort is cohort
        assert dict(reconciler.previous_rank_index) == {"a": 0, "b": 1, "c": 2}

    @pytest.mark.asyncio
    async def test_same_refresh_twice_is_identical(self, reconciler, make_leader, make_event) -> None:
        leaders = [
            make_leader("a", 40, history=[make_event("a", d) for d in (0, 7, 14)]),
            make_leader("b", 55, history=[make_event("b", d, points=20) for d in (1, 2)]),
            make_leader("c", 55),
        ]
        first = await reconciler.submit_full_refresh(leaders)
        second = await reconciler.submit_full_refresh(leaders)

        assert first == second
        assert reconciler.cohort is first
        assert all(leader.rank_change is None for leader in second.leaders)

    @pytest.mark.asyncio
    async def test_unchanged_refresh_keeps_rank_changes(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh(
            [make_leader("a", 90), make_leader("b", 80), make_leader("c", 70)]
        )
        moved_inputs = [make_leader("a", 60), make_leader("b", 80), make_leader("c", 95)]
        moved = await reconciler.submit_full_refresh(moved_inputs)
        index = dict(reconciler.previous_rank_index)

        repeated = await reconciler.submit_full_refresh(moved_inputs)

        assert repeated == moved
        assert dict(reconciler.previous_rank_index) == index
        assert {leader.id: leader.rank_change for leader in repeated.leaders} == {
            "c": 2,
            "b": 0,
            "a": -2,
        }

    @pytest.mark.asyncio
    async def test_leaders_holding_position_keep_last_change(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh(
            [make_leader("a", 90), make_leader("b", 80), make_leader("c", 70)]
        )
        moved = await reconciler.submit_full_refresh(
            [make_leader("a", 60), make_leader("b", 80), make_leader("c", 95)]
        )

        # b's score changes but nobody changes position
        cohort = await reconciler.submit_full_refresh(
            [make_leader("a", 60), make_leader("b", 81), make_leader("c", 95)]
        )

        assert cohort.version > moved.version
        assert cohort.get("b").overall == 81
        assert {leader.id: leader.rank_change for leader in cohort.leaders} == {
            "c": 2,
            "b": 0,
            "a": -2,
        }

    @pytest.mark.asyncio
    async def test_no_listener_call_without_change(self, reconciler, make_leader) -> None:
        seen = []
        reconciler.subscribe(lambda previous, current: seen.append(current.version))
        leaders = [make_leader("a", 10), make_leader("b", 20)]

        await reconciler.submit_full_refresh(leaders)
        await reconciler.submit_full_refresh(leaders)

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_non_finite_metrics_leave_leader_out(self, reconciler, make_leader) -> None:
        broken = LeaderSnapshot(
            id="c",
            name="C",
            raw_metrics=RawMetrics.model_construct(
                task_points=float("nan"), ritual_points=0.0, assist_points=0.0
            ),
            history=(),
        )
        cohort = await reconciler.submit_full_refresh([make_leader("a", 70), make_leader("b", 60), broken])
        assert ids(cohort) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_non_finite_metrics_keep_previous_values(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh([make_leader("a", 70), make_leader("c", 40)])
        broken = LeaderSnapshot(
            id="c",
            name="C",
            raw_metrics=RawMetrics.model_construct(
                task_points=float("inf"), ritual_points=0.0, assist_points=0.0
            ),
            history=(),
        )

        cohort = await reconciler.submit_full_refresh([make_leader("a", 75), broken])

        assert ids(cohort) == ["a", "c"]
        assert cohort.get("a").overall == 75
        assert cohort.get("c").overall == 40

    @pytest.mark.asyncio
    async def test_rank_changes_between_refreshes(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh(
            [make_leader("a", 90), make_leader("b", 80), make_leader("c", 70)]
        )
        cohort = await reconciler.submit_full_refresh(
            [make_leader("a", 60), make_leader("b", 80), make_leader("c", 95)]
        )
        assert ids(cohort) == ["c", "b", "a"]
        assert cohort.get("c").rank_change == 2
        assert cohort.get("b").rank_change == 0
        assert cohort.get("a").rank_change == -2

    @pytest.mark.asyncio
    async def test_partial_failure_is_contained(self, reconciler, make_leader, make_event) -> None:
        def cohort_inputs(bad_leader=None):
            leaders = [
                make_leader(f"l{n}", 10 * n, history=[make_event(f"l{n}", d) for d in range(0, 8 * n, 4)])
                for n in range(1, 6)
            ]
            if bad_leader is not None:
                leaders[2] = bad_leader
            return leaders

        clean = await LeaderboardReconciler().submit_full_refresh(cohort_inputs())
        first = await reconciler.submit_full_refresh(cohort_inputs())

        malformed = make_leader(
            "l3",
            99,
            history=[
                make_event("l3", 1),
                ContributionEvent(
                    leader_id="l3",
                    kind=ContributionKind.TASK,
                    points=5,
                    occurred_at=datetime(2026, 3, 1, 8, 0),
                ),
            ],
        )
        cohort = await reconciler.submit_full_refresh(cohort_inputs(malformed))

        assert len(cohort) == 5
        for leader_id in ("l1", "l2", "l4", "l5"):
            assert derived(cohort, leader_id) == derived(clean, leader_id)
        assert derived(cohort, "l3") == derived(first, "l3")
        assert cohort.get("l3").raw_metrics == first.get("l3").raw_metrics

    @pytest.mark.asyncio
    async def test_missing_data_without_previous_is_left_out(self, reconciler, make_leader) -> None:
        no_history = make_leader("b", 50).model_copy(update={"history": None})
        cohort = await reconciler.submit_full_refresh([make_leader("a", 60), no_history])
        assert ids(cohort) == ["a"]

    @pytest.mark.asyncio
    async def test_leaders_missing_from_refresh_are_dropped(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh([make_leader("a", 60), make_leader("b", 50)])
        cohort = await reconciler.submit_full_refresh([make_leader("a", 60)])
        assert ids(cohort) == ["a"]

    @pytest.mark.asyncio
    async def test_superseded_refresh_is_discarded(self, reconciler, make_leader) -> None:
        newer = await reconciler.submit_full_refresh([make_leader("a", 80)], version=10)
        result = await reconciler.submit_full_refresh([make_leader("a", 20)], version=5)
        assert result is newer
        assert reconciler.cohort.get("a").overall == 80

    @pytest.mark.asyncio
    async def test_newer_incremental_survives_slow_refresh(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh([make_leader("a", 50), make_leader("b", 60)])

        refresh_version = reconciler.issue_version()
        await reconciler.submit_incremental_update("a", RawMetrics(task_points=90), [])
        cohort = await reconciler.submit_full_refresh(
            [make_leader("a", 50), make_leader("b", 65)],
            version=refresh_version,
        )

        assert cohort.get("a").overall == 90
        assert cohort.get("b").overall == 65
        assert ids(cohort) == ["a", "b"]


class TestIncrementalUpdate:
    """Tests for the push-based single-leader path."""

    @pytest.mark.asyncio
    async def test_new_leader_inserted_between_tied_leaders(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh(
            [make_leader("a", 70), make_leader("b", 65), make_leader("c", 65)]
        )

        inserted = await reconciler.submit_incremental_update(
            "d", RawMetrics(task_points=68), [], name="D", team="core"
        )
        cohort = reconciler.cohort

        assert ids(cohort) == ["a", "d", "b", "c"]
        assert inserted == cohort.get("d")
        assert inserted.overall == 68
        assert inserted.rank_change is None
        assert cohort.get("a").rank_change == 0
        assert cohort.get("b").rank_change == -1
        assert cohort.get("c").rank_change == -1

    @pytest.mark.asyncio
    async def test_keeps_name_and_team_of_known_leader(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh([make_leader("a", 10, team="ops")])
        updated = await reconciler.submit_incremental_update("a", RawMetrics(task_points=20), [])
        assert updated.name == "A"
        assert updated.team == "ops"
        assert updated.overall == 20

    @pytest.mark.asyncio
    async def test_stale_update_leaves_cohort_unchanged(self, reconciler, make_leader) -> None:
        before = await reconciler.submit_full_refresh(
            [make_leader("a", 70), make_leader("b", 60)], version=10
        )
        result = await reconciler.submit_incremental_update(
            "b", RawMetrics(task_points=99), [], version=5
        )
        assert reconciler.cohort is before
        assert result == before.get("b")

    @pytest.mark.asyncio
    async def test_stale_update_for_unranked_leader_dropped(self, reconciler, make_leader) -> None:
        await reconciler.submit_full_refresh([make_leader("a", 70)], version=10)
        result = await reconciler.submit_incremental_update("z", RawMetrics(task_points=5), [], version=3)
        assert result is None
        assert ids(reconciler.cohort) == ["a"]

    @pytest.mark.asyncio
    async def test_malformed_history_keeps_previous(self, reconciler, make_leader, make_event) -> None:
        before = await reconciler.submit_full_refresh([make_leader("a", 70)])
        result = await reconciler.submit_incremental_update(
            "a", RawMetrics(task_points=10), [make_event("b", 0)]
        )
        assert reconciler.cohort is before
        assert result.overall == 70

    @pytest.mark.asyncio
    async def test_concurrent_updates_produce_consistent_cohort(self, reconciler) -> None:
        await asyncio.gather(
            *[
                reconciler.submit_incremental_update(f"l{n:02d}", RawMetrics(task_points=n % 7), [])
                for n in range(30)
            ]
        )
        cohort = reconciler.cohort
        assert len(cohort) == 30
        # Construction validates ordering; rebuilding must not raise
        assert RankedCohort(version=cohort.version, leaders=cohort.leaders) == cohort


class TestPublishing:
    """Tests for listeners and read access."""

    @pytest.mark.asyncio
    async def test_listeners_see_each_transition(self, reconciler, make_leader) -> None:
        seen: list[tuple[RankedCohort, RankedCohort]] = []
        unsubscribe = reconciler.subscribe(lambda prev, cur: seen.append((prev, cur)))

        first = await reconciler.submit_full_refresh([make_leader("a", 10)])
        second = await reconciler.submit_incremental_update("a", RawMetrics(task_points=30), [])
        unsubscribe()
        await reconciler.submit_incremental_update("a", RawMetrics(task_points=40), [])

        assert len(seen) == 2
        assert seen[0][0] == RankedCohort()
        assert seen[0][1] is first
        assert seen[1][1].get("a") == second

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_publish(self, reconciler, make_leader) -> None:
        def broken(previous, current):
            raise RuntimeError("listener bug")

        reconciler.subscribe(broken)
        cohort = await reconciler.submit_full_refresh([make_leader("a", 10)])
        assert reconciler.cohort is cohort

    @pytest.mark.asyncio
    async def test_cohort_cannot_be_mutated(self, reconciler, make_leader) -> None:
        cohort = await reconciler.submit_full_refresh([make_leader("a", 10)])
        with pytest.raises(ValidationError):
            cohort.leaders[0].overall = 99
        with pytest.raises(ValidationError):
            cohort.leaders = ()
        assert reconciler.cohort.get("a").overall == 10

    @pytest.mark.asyncio
    async def test_versions_increase(self, reconciler, make_leader) -> None:
        first = await reconciler.submit_full_refresh([make_leader("a", 10)])
        second = await reconciler.submit_incremental_update("a", RawMetrics(task_points=20), [])
        assert reconciler.cohort.version > first.version
        assert second is not None

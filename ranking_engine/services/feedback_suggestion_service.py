"""Random peer-feedback prompting.

Deliberately stochastic and kept apart from the scoring engine: nothing here
feeds into overall, consistency, momentum or rank.
"""

import random
from collections.abc import Collection, Sequence

import structlog

from ranking_engine.core.config import settings
from ranking_engine.schemas.leader import LeaderSnapshot

logger = structlog.get_logger()


class FeedbackSuggestionService:
    """Decides when to prompt a leader for peer feedback and about whom."""

    def __init__(
        self,
        rng: random.Random | None = None,
        show_probability: float | None = None,
        same_team_bias: float | None = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.show_probability = (
            settings.feedback_show_probability if show_probability is None else show_probability
        )
        self.same_team_bias = (
            settings.feedback_same_team_bias if same_team_bias is None else same_team_bias
        )

    def should_show_today(self, already_shown_today: bool) -> bool:
        """At most one prompt per day, otherwise a coin flip."""
        if already_shown_today:
            return False
        return self.rng.random() < self.show_probability

    def suggest_leader(
        self,
        from_leader_id: str,
        leaders: Sequence[LeaderSnapshot],
        recently_suggested: Collection[str] = (),
        recently_evaluated: Collection[str] = (),
    ) -> str | None:
        """Pick a peer to evaluate.

        Peers the caller reports as recently suggested or evaluated are
        skipped unless nobody else is left. Same-team peers get a bias.
        """
        peers = [leader for leader in leaders if leader.id != from_leader_id]
        if not peers:
            return None

        available = [
            leader
            for leader in peers
            if leader.id not in recently_suggested and leader.id not in recently_evaluated
        ]
        if not available:
            return self.rng.choice(peers).id

        from_team = next((leader.team for leader in leaders if leader.id == from_leader_id), None)
        same_team = [leader for leader in available if leader.team == from_team]
        if same_team and self.rng.random() < self.same_team_bias:
            choice = self.rng.choice(same_team)
        else:
            choice = self.rng.choice(available)

        logger.debug("Peer feedback suggested", from_leader_id=from_leader_id, suggested=choice.id)
        return choice.id

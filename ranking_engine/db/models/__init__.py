from ranking_engine.db.models.base import Base
from ranking_engine.db.models.contribution import ContributionRecord
from ranking_engine.db.models.leader import Leader

__all__ = [
    "Base",
    "Leader",
    "ContributionRecord",
]

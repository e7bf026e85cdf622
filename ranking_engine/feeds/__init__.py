from ranking_engine.feeds.change_feed import (
    SCORING_FIELDS,
    ChangeFeed,
    ChangeFeedConsumer,
    InMemoryChangeFeed,
)

__all__ = ["ChangeFeed", "ChangeFeedConsumer", "InMemoryChangeFeed", "SCORING_FIELDS"]

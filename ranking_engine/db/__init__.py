from ranking_engine.db.database import get_db, get_engine, get_session_maker, init_db
from ranking_engine.db.store import SqlMetricStore

__all__ = ["get_db", "get_engine", "get_session_maker", "init_db", "SqlMetricStore"]

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ranking_engine.db.models.base import Base, TimestampMixin


class ContributionRecord(Base, TimestampMixin):
    """Append-only contribution history row."""

    __tablename__ = "contribution_events"

    # SQLite only autoincrements INTEGER primary keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
    )
    leader_id: Mapped[str] = mapped_column(
        ForeignKey("leaders.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    leader = relationship("Leader", back_populates="contributions")

    __table_args__ = (
        Index("idx_contribution_events_leader_time", "leader_id", "occurred_at"),
        Index("idx_contribution_events_kind", "kind"),
    )

    def __repr__(self) -> str:
        return f"<ContributionRecord {self.kind} by leader_id={self.leader_id}>"

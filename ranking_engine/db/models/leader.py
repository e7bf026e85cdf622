from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ranking_engine.db.models.base import Base, TimestampMixin


class Leader(Base, TimestampMixin):
    __tablename__ = "leaders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    team: Mapped[str] = mapped_column(String(255), default="")

    # Raw point totals; everything derived from them is computed by the engine
    task_points: Mapped[float] = mapped_column(default=0.0)
    ritual_points: Mapped[float] = mapped_column(default=0.0)
    assist_points: Mapped[float] = mapped_column(default=0.0)

    # Relationships
    contributions = relationship(
        "ContributionRecord",
        back_populates="leader",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_leaders_team", "team"),)

    def __repr__(self) -> str:
        return f"<Leader {self.id} {self.name}>"

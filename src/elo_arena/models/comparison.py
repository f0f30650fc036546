import uuid
from datetime import UTC, datetime

from sqlalchemy import Double
from sqlmodel import Field, SQLModel


class ComparisonRecord(SQLModel, table=True):
    """One resolved decision between two items."""

    __tablename__ = "comparisons"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    sequence: int = Field(default=0, index=True)
    winner_id: str = Field(index=True)
    loser_id: str = Field(index=True)
    # Ratings before the decision, used by snapshot undo
    winner_rating_before: float | None = Field(default=None, sa_type=Double)
    loser_rating_before: float | None = Field(default=None, sa_type=Double)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def clone(self) -> "ComparisonRecord":
        return ComparisonRecord(
            id=self.id,
            sequence=self.sequence,
            winner_id=self.winner_id,
            loser_id=self.loser_id,
            winner_rating_before=self.winner_rating_before,
            loser_rating_before=self.loser_rating_before,
            timestamp=self.timestamp,
        )

import uuid

from sqlalchemy import Double
from sqlmodel import Field, SQLModel

from elo_arena.core.config import DEFAULT_RATING


class Item(SQLModel, table=True):
    """A rankable entity and its current rating."""

    __tablename__ = "items"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = ""
    display_ref: str | None = None  # file path or URL, not interpreted by the session
    rating: float = Field(default=DEFAULT_RATING, sa_type=Double)
    match_count: int = Field(default=0, ge=0)

    def clone(self) -> "Item":
        """Detached copy safe to hand to callers or another session."""
        return Item(
            id=self.id,
            name=self.name,
            display_ref=self.display_ref,
            rating=self.rating,
            match_count=self.match_count,
        )

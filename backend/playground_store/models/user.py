"""
User model — one signed-in caller of the playground.

A user is identified externally by (client_id, provider): the id handed out
by the sign-in provider plus the provider's name. The integer key is only
used as the owner reference from projects. Rows are inserted once, on first
sign-in, and never updated or deleted here.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from playground_store.core.database import Base


class User(Base):
    """External identity mapped to an internal owner key."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    client_id: Mapped[str] = mapped_column(
        String(255), nullable=False,
    )
    provider: Mapped[str] = mapped_column(
        String(50), nullable=False,
    )
    username: Mapped[str] = mapped_column(
        String(255), nullable=False, default="",
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("client_id", "provider", name="uq_users_client_id_provider"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} provider={self.provider!r} client_id={self.client_id!r}>"

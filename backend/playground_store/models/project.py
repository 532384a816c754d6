"""
Project model — one saved program of a user.

Design notes:
  • public_id is the random identifier exposed to clients; id stays internal.
  • name is stored escaped (see services.encoding) and is unique per owner.
  • read_only_files is a JSON array of file names the owner may not
    freely edit or delete. NULL and "" both mean "none".
"""

import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from playground_store.core.database import Base


class Project(Base):
    """A user's project; owns its files."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    # Text: escaping can triple the length of a name.
    name: Mapped[str] = mapped_column(
        Text, nullable=False,
    )
    public_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    args: Mapped[str] = mapped_column(
        Text, nullable=False, default="",
    )
    run_configuration: Mapped[str] = mapped_column(
        String(50), nullable=False,
    )
    origin: Mapped[str | None] = mapped_column(
        Text, nullable=True,
    )
    read_only_files: Mapped[str | None] = mapped_column(
        Text, nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_projects_owner_id_name"),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} public_id={self.public_id!r} name={self.name!r}>"

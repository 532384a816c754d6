"""
File model — one source file inside a project.

Files are removed by the database when their project row is deleted
(ON DELETE CASCADE); application code never deletes them transitively.
"""

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from playground_store.core.database import Base


class File(Base):
    """Source file belonging to a project."""

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    public_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    # Text: escaping can triple the length of a name.
    name: Mapped[str] = mapped_column(
        Text, nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text, nullable=False, default="",
    )

    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_files_project_id_name"),
    )

    def __repr__(self) -> str:
        return f"<File id={self.id} public_id={self.public_id!r} name={self.name!r}>"

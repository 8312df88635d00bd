"""
Task model — one todo item owned by a user.

Rows are append-only: there is no update or delete path.  `created_at`
is always the store's clock at insert time.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from togo.db.models.base import Base, UTCDateTime, store_now


class Task(Base):
    __tablename__ = "task"
    __table_args__ = (
        # Serves both per-user listing and the quota count for one day.
        Index("task_usr_id_created_at_idx", "usr_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    usr_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("usr.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, server_default=store_now()
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} usr_id={self.usr_id} created_at={self.created_at}>"

"""
User model — credentials and the per-user daily task quota.

`max_todo` is only changed by administrative action; the application
reads it but never writes it.
"""

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from togo.core.constants import DEFAULT_MAX_TODO, USERNAME_MAX_LENGTH
from togo.db.models.base import Base


class User(Base):
    __tablename__ = "usr"
    __table_args__ = (
        CheckConstraint("max_todo >= 0", name="usr_max_todo_check"),
        Index("usr_username_pwd_hash_idx", "username", "pwd_hash"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH), unique=True, nullable=False
    )
    credential_hash: Mapped[str] = mapped_column("pwd_hash", Text, nullable=False)
    max_todo: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_MAX_TODO,
        server_default=text(str(DEFAULT_MAX_TODO)),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} {self.username} max_todo={self.max_todo}>"

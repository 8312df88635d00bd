"""
Models package — re-exports Base and all models.

Import models here so `Base.metadata.create_all` picks up every table.

When adding a new model:
    1. Create `togo/db/models/<table_name>.py`
    2. Import it here
"""

from togo.db.models.base import Base
from togo.db.models.task import Task
from togo.db.models.user import User

__all__ = [
    "Base",
    "Task",
    "User",
]

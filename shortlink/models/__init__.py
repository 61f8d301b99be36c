"""SQLAlchemy models.

All models should be imported here for Alembic to detect them.
"""

from shortlink.core.database import Base
from shortlink.models.click import Click
from shortlink.models.link import Link
from shortlink.models.user import User

__all__ = ["Base", "Click", "Link", "User"]

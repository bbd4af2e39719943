from .base import Base
from .session import Database

__all__ = ["Base", "Database"]

"""Local durable storage: UI preferences and the offline board cache.

``from database import db, DatabaseError`` is the public surface.
"""
from pathlib import Path

from config import DEFAULT_DB_FILENAME

DB_PATH: Path = Path(DEFAULT_DB_FILENAME)

from database.helpers import DatabaseError  # noqa: E402
from database.core import DatabaseCore  # noqa: E402
from database.cache import CacheMixin  # noqa: E402


class Database(DatabaseCore, CacheMixin):
    """Key-value core plus the per-project cache helpers."""


db = Database()


def configure_db_path(path: Path) -> None:
    """Point storage at another file. Only allowed while no connection is open.

    Raises:
        RuntimeError: If the connection is already open.
    """
    global DB_PATH
    if db.is_open:
        raise RuntimeError(
            f"Database already open at {DB_PATH}; call configure_db_path() before first use"
        )
    DB_PATH = path

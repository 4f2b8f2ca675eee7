"""SQLite database connection and initialization."""
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from vet1stop.app.config import get_settings
from vet1stop.errors import DuplicateKeyError, RepositoryError
from vet1stop.storage.sql import regexp

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"

def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    db_path = db_path or get_settings().db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.create_function("REGEXP", 2, regexp, deterministic=True)
    return conn

def init_db(db_path: Optional[Path] = None) -> None:
    schema_sql = _SCHEMA_PATH.read_text(encoding="utf-8")
    conn = get_connection(db_path)
    try:
        conn.executescript(schema_sql)
        conn.commit()
    finally:
        conn.close()

@contextmanager
def session(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    """Connection scoped to one operation; sqlite errors become RepositoryError."""
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise RepositoryError(f"Cannot open database: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise DuplicateKeyError(str(e)) from e
    except sqlite3.Error as e:
        conn.rollback()
        raise RepositoryError(str(e)) from e
    finally:
        conn.close()

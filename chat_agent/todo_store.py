"""Todo persistence with SQLite storage."""

import asyncio
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from chat_agent.config import get_config
from chat_agent.logging import get_logger

log = get_logger(__name__)


def _utcnow_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(UTC).isoformat()


@dataclass
class TodoItem:
    """A persisted todo record."""

    id: str
    title: str
    completed: bool = False
    created_at: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "TodoItem":
        return cls(
            id=row[0],
            title=row[1],
            completed=bool(row[2]),
            created_at=row[3],
        )


_SELECT_COLUMNS = "SELECT id, title, completed, created_at FROM todos"


class TodoStore:
    """Create, query and delete todo records."""

    def __init__(self, db_path: Path | str | None = None):
        """Initialize todo store.

        Args:
            db_path: Optional database path override
        """
        if db_path is None:
            config = get_config()
            self.db_path = Path(config.todo.path).expanduser()
        else:
            self.db_path = Path(db_path).expanduser()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db: aiosqlite.Connection | None = None
        self._db_lock = asyncio.Lock()

    async def _ensure_db(self) -> None:
        """Ensure database is initialized."""
        async with self._db_lock:
            if self._db is not None:
                return
            db = await aiosqlite.connect(str(self.db_path))
            await db.execute("""
                CREATE TABLE IF NOT EXISTS todos (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_todos_created_at ON todos(created_at)"
            )
            await db.commit()
            self._db = db
            log.debug("Todo store opened", path=str(self.db_path))

    async def create(self, title: str) -> TodoItem:
        """Create and persist a new todo."""
        await self._ensure_db()

        item = TodoItem(id=str(uuid.uuid4()), title=title)
        await self._db.execute(
            "INSERT INTO todos (id, title, completed, created_at) VALUES (?, ?, ?, ?)",
            (item.id, item.title, int(item.completed), item.created_at),
        )
        await self._db.commit()
        log.debug("Created todo", todo_id=item.id)
        return item

    async def find(self, search: str | None = None) -> list[TodoItem]:
        """Return todos newest first, optionally filtered by title.

        Args:
            search: Case-insensitive substring matched against the title
        """
        await self._ensure_db()

        if search:
            query = (
                f"{_SELECT_COLUMNS} WHERE instr(lower(title), lower(?)) > 0 "
                "ORDER BY created_at DESC, rowid DESC"
            )
            params: tuple[Any, ...] = (search,)
        else:
            query = f"{_SELECT_COLUMNS} ORDER BY created_at DESC, rowid DESC"
            params = ()

        async with self._db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        log.debug("Queried todos", search=search, count=len(rows))
        return [TodoItem.from_row(row) for row in rows]

    async def get(self, todo_id: str) -> TodoItem | None:
        """Get a todo by id."""
        await self._ensure_db()

        async with self._db.execute(f"{_SELECT_COLUMNS} WHERE id = ?", (todo_id,)) as cursor:
            row = await cursor.fetchone()
        return TodoItem.from_row(row) if row else None

    async def delete_by_id(self, todo_id: str) -> TodoItem | None:
        """Delete a todo by id and return it, or None when absent."""
        item = await self.get(todo_id)
        if item is None:
            return None
        await self._db.execute("DELETE FROM todos WHERE id = ?", (item.id,))
        await self._db.commit()
        log.debug("Deleted todo", todo_id=item.id)
        return item

    async def delete_by_title(self, title: str) -> TodoItem | None:
        """Delete the oldest todo whose title contains ``title`` (case-insensitive)."""
        await self._ensure_db()

        async with self._db.execute(
            f"{_SELECT_COLUMNS} WHERE instr(lower(title), lower(?)) > 0 "
            "ORDER BY created_at ASC, rowid ASC LIMIT 1",
            (title,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        item = TodoItem.from_row(row)
        await self._db.execute("DELETE FROM todos WHERE id = ?", (item.id,))
        await self._db.commit()
        log.debug("Deleted todo", todo_id=item.id)
        return item

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None


# Global store instance
_store: TodoStore | None = None


def get_todo_store() -> TodoStore:
    """Get the global todo store."""
    global _store
    if _store is None:
        _store = TodoStore()
    return _store

import json
import logging
import os
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from nexttrain.core.errors import DocumentStoreError

logger = logging.getLogger("nexttrain.document_store")

# Upper bound on writes committed together, mirroring hosted document stores.
MAX_BATCH_WRITES = 500

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_OPERATORS = {"==": "=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def to_utc_iso(dt: datetime) -> str:
    """Serialize an instant as a fixed-width UTC ISO-8601 string.

    Naive datetimes are taken to be UTC. Fixed width keeps lexical order equal
    to chronological order, which range queries rely on.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def _encode(value: Any, now: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, datetime):
        return to_utc_iso(value)
    if isinstance(value, dict):
        return {k: _encode(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v, now) for v in value]
    return value


def _split_path(path: str) -> Tuple[str, str, str]:
    """Split `a/b/c/d` into (parent, collection, doc_id)."""
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts or len(parts) % 2 != 0:
        raise DocumentStoreError(f"invalid document path: {path!r}")
    return "/".join(parts[:-2]), parts[-2], parts[-1]


def _json_expr(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise DocumentStoreError(f"invalid field path: {field!r}")
    return f"json_extract(data, '$.{field}')"


@dataclass
class Document:
    path: str
    id: str
    data: Dict[str, Any]
    update_time: str


class DocumentStore:
    """A small SQLite-backed document store.

    Documents live at slash-separated paths (`collection/doc/collection/doc`)
    and hold JSON. Supports upsert-by-path with a server-assigned timestamp,
    atomic write batches, and collection-group queries with equality and
    range filters on JSON fields.

    Usage:
      store = DocumentStore(path_to_db)
      store.set("trainDates/20240301", {"updateTime": SERVER_TIMESTAMP})
      store.collection_group("trainStops").where("station.name", "==", "A").get()
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        dirname = os.path.dirname(db_path)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        self._init_schema()

    def _connect(self):
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            cur = conn.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error:
            pass
        return conn

    def _init_schema(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        path TEXT PRIMARY KEY,
                        parent TEXT NOT NULL,
                        collection TEXT NOT NULL,
                        doc_id TEXT NOT NULL,
                        data TEXT NOT NULL,
                        update_time TEXT NOT NULL
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS ix_documents_parent ON documents(parent, collection)")
                conn.execute("CREATE INDEX IF NOT EXISTS ix_documents_collection ON documents(collection)")
        finally:
            conn.close()

    def ensure_index(self, collection: str, fields: Sequence[str]) -> None:
        """Create a composite index over JSON fields of one collection group."""
        exprs = ", ".join(_json_expr(f) for f in fields)
        name = "ix_" + re.sub(r"[^A-Za-z0-9]+", "_", collection + "_" + "_".join(fields))
        conn = self._connect()
        try:
            with conn:
                conn.execute(f"CREATE INDEX IF NOT EXISTS {name} ON documents(collection, {exprs})")
        except sqlite3.Error as e:
            raise DocumentStoreError(f"cannot create index {name}: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _upsert(conn, path: str, data: Dict[str, Any], now: str) -> None:
        parent, collection, doc_id = _split_path(path)
        payload = json.dumps(_encode(data, now), ensure_ascii=False)
        conn.execute(
            "INSERT INTO documents (path, parent, collection, doc_id, data, update_time) VALUES (?,?,?,?,?,?) "
            "ON CONFLICT(path) DO UPDATE SET data = excluded.data, update_time = excluded.update_time",
            (path.strip("/"), parent, collection, doc_id, payload, now),
        )

    def set(self, path: str, data: Dict[str, Any]) -> str:
        """Create or fully replace the document at `path`. Returns the write time."""
        now = to_utc_iso(datetime.now(timezone.utc))
        conn = self._connect()
        try:
            with conn:
                self._upsert(conn, path, data, now)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"cannot write {path}: {e}") from e
        finally:
            conn.close()
        return now

    def get(self, path: str) -> Optional[Document]:
        conn = self._connect()
        try:
            cur = conn.execute("SELECT * FROM documents WHERE path = ? LIMIT 1", (path.strip("/"),))
            r = cur.fetchone()
            return self._to_document(r) if r else None
        except sqlite3.Error as e:
            raise DocumentStoreError(f"cannot read {path}: {e}") from e
        finally:
            conn.close()

    def count(self, parent: str, collection: str) -> int:
        """Number of documents in one sub-collection."""
        conn = self._connect()
        try:
            cur = conn.execute(
                "SELECT COUNT(*) FROM documents WHERE parent = ? AND collection = ?",
                (parent.strip("/"), collection),
            )
            return int(cur.fetchone()[0])
        except sqlite3.Error as e:
            raise DocumentStoreError(f"cannot count {parent}/{collection}: {e}") from e
        finally:
            conn.close()

    def batch(self) -> "WriteBatch":
        return WriteBatch(self)

    def collection_group(self, collection: str) -> "Query":
        """Query every sub-collection named `collection`, regardless of parent."""
        return Query(self, collection)

    def _commit(self, writes: List[Tuple[str, Dict[str, Any]]]) -> str:
        now = to_utc_iso(datetime.now(timezone.utc))
        conn = self._connect()
        try:
            with conn:
                for path, data in writes:
                    self._upsert(conn, path, data, now)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"batch commit failed: {e}") from e
        finally:
            conn.close()
        return now

    def _run(self, query: "Query") -> List[Document]:
        sql = "SELECT * FROM documents WHERE collection = ?"
        params: List[Any] = [query.collection]
        for field, op, value in query.filters:
            sql += f" AND {_json_expr(field)} {_OPERATORS[op]} ?"
            params.append(_encode(value, ""))
        if query.order:
            sql += f" ORDER BY {_json_expr(query.order)} ASC, rowid ASC"
        else:
            sql += " ORDER BY rowid ASC"
        if query.max_results is not None:
            sql += " LIMIT ?"
            params.append(query.max_results)

        conn = self._connect()
        try:
            cur = conn.execute(sql, tuple(params))
            return [self._to_document(r) for r in cur.fetchall()]
        except sqlite3.Error as e:
            raise DocumentStoreError(f"query on {query.collection} failed: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _to_document(row) -> Document:
        return Document(path=row["path"], id=row["doc_id"], data=json.loads(row["data"]), update_time=row["update_time"])


class WriteBatch:
    """Group of upserts committed in a single transaction."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._writes: List[Tuple[str, Dict[str, Any]]] = []

    def __len__(self) -> int:
        return len(self._writes)

    def set(self, path: str, data: Dict[str, Any]) -> "WriteBatch":
        if len(self._writes) >= MAX_BATCH_WRITES:
            raise DocumentStoreError(f"batch exceeds {MAX_BATCH_WRITES} writes")
        _split_path(path)
        self._writes.append((path, data))
        return self

    def commit(self) -> str:
        if not self._writes:
            return to_utc_iso(datetime.now(timezone.utc))
        return self._store._commit(self._writes)


class Query:
    """Immutable query builder; each refinement returns a new Query."""

    def __init__(self, store: DocumentStore, collection: str, filters=(), order: Optional[str] = None, max_results: Optional[int] = None):
        self._store = store
        self.collection = collection
        self.filters: Tuple[Tuple[str, str, Any], ...] = tuple(filters)
        self.order = order
        self.max_results = max_results

    def _copy(self, **changes) -> "Query":
        kwargs = {"filters": self.filters, "order": self.order, "max_results": self.max_results}
        kwargs.update(changes)
        return Query(self._store, self.collection, **kwargs)

    def where(self, field: str, op: str, value: Any) -> "Query":
        if op not in _OPERATORS:
            raise DocumentStoreError(f"unsupported operator: {op!r}")
        _json_expr(field)
        return self._copy(filters=self.filters + ((field, op, value),))

    def order_by(self, field: str) -> "Query":
        _json_expr(field)
        return self._copy(order=field)

    def limit(self, n: int) -> "Query":
        return self._copy(max_results=int(n))

    def get(self) -> List[Document]:
        return self._store._run(self)

from __future__ import annotations
from itertools import count
from pathlib import Path
import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml
from postgrest.exceptions import APIError

from .config import (
    get_seed_file,
    get_store_backend,
    get_supabase_credentials,
)
from .records import Record, shape_for_collection

log = logging.getLogger(__name__)

Key = Sequence[Tuple[str, str]]


class StoreError(Exception):
    """A backing-store failure. `message` is the store's text, verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _key_desc(key: Key) -> str:
    return ", ".join(f"{col}={val!r}" for col, val in key)


class BaseStore:
    """Operations shared by every backing store adapter.

    Adapters implement fetch_all/insert/update/delete over raw rows.
    """

    def fetch_all(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        filters: Optional[Key] = None,
    ) -> List[dict]:
        raise NotImplementedError

    def insert(self, collection: str, payload: dict) -> List[dict]:
        raise NotImplementedError

    def update(self, collection: str, key: Key, payload: dict) -> List[dict]:
        raise NotImplementedError

    def delete(self, collection: str, key: Key) -> List[dict]:
        raise NotImplementedError

    def fetch_records(self, collection: str, order_by: Optional[str] = None) -> List[Record]:
        """Fetch a whole collection and tag every row with the collection's shape."""
        shape = shape_for_collection(collection)
        rows = self.fetch_all(collection, order_by=order_by)
        return [Record.from_row(row, shape) for row in rows]


# -------------------------------
# Supabase (hosted PostgREST)
# -------------------------------

class SupabaseStore(BaseStore):
    def __init__(self, client):
        self.client = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            message = getattr(e, "message", None) or str(e)
            log.warning("supabase %s failed: %s", action, message)
            raise StoreError(message) from e

    def fetch_all(self, collection, order_by=None, descending=True, limit=None, filters=None):
        query = self.client.table(collection).select("*")
        for col, val in filters or []:
            query = query.eq(col, val)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        resp = self._execute(query, f"select on {collection}")
        return list(resp.data or [])

    def insert(self, collection, payload):
        resp = self._execute(self.client.table(collection).insert(dict(payload)), f"insert into {collection}")
        return list(resp.data or [])

    def update(self, collection, key, payload):
        query = self.client.table(collection).update(dict(payload))
        for col, val in key:
            query = query.eq(col, val)
        resp = self._execute(query, f"update on {collection}")
        if not resp.data:
            raise StoreError(f"No row in '{collection}' matches {_key_desc(key)}")
        return list(resp.data)

    def delete(self, collection, key):
        query = self.client.table(collection).delete()
        for col, val in key:
            query = query.eq(col, val)
        resp = self._execute(query, f"delete on {collection}")
        if not resp.data:
            raise StoreError(f"No row in '{collection}' matches {_key_desc(key)}")
        return list(resp.data)


# -------------------------------
# In-process store (local development and tests)
# -------------------------------

# Columns that must be unique per collection, as enforced by the hosted schema
MEMORY_DEFAULT_UNIQUE = {"inventory": "itemcode"}
MEMORY_COLLECTIONS = ("suppliers", "inventory", "wheelmotor", "activity")


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _row_matches(row: dict, key: Key) -> bool:
    for col, val in key:
        cur = row.get(col)
        if cur is None or str(cur) != str(val):
            return False
    return True


class MemoryStore(BaseStore):
    """Dict-of-lists store with the same contract as SupabaseStore."""

    def __init__(self, tables: Optional[Dict[str, Iterable[dict]]] = None, unique: Optional[Dict[str, str]] = None):
        self.tables: Dict[str, List[dict]] = {}
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(r) for r in rows or []]
        self.unique = dict(MEMORY_DEFAULT_UNIQUE if unique is None else unique)
        start = 1
        for rows in self.tables.values():
            for r in rows:
                try:
                    start = max(start, int(r.get("id")) + 1)
                except (TypeError, ValueError):
                    continue
        self._ids = count(start)

    @classmethod
    def from_seed_file(cls, path: Path) -> "MemoryStore":
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        tables = data.get("tables", data) if isinstance(data, dict) else {}
        return cls({k: v for k, v in tables.items() if isinstance(v, list)})

    def _table(self, collection: str) -> List[dict]:
        if collection not in self.tables:
            raise StoreError(f'relation "public.{collection}" does not exist')
        return self.tables[collection]

    def create_collection(self, collection: str) -> None:
        self.tables.setdefault(collection, [])

    def fetch_all(self, collection, order_by=None, descending=True, limit=None, filters=None):
        rows = [dict(r) for r in self._table(collection) if _row_matches(r, filters or [])]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: str(r.get(order_by)), reverse=descending)
            rows = present + missing
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, collection, payload):
        table = self._table(collection)
        row = dict(payload)
        ucol = self.unique.get(collection)
        if ucol and any(r.get(ucol) == row.get(ucol) for r in table):
            raise StoreError(f'duplicate key value violates unique constraint "{collection}_{ucol}_key"')
        row.setdefault("id", str(next(self._ids)))
        row.setdefault("created_at", _now_iso())
        table.append(row)
        log.debug("memory insert into %s: id=%s", collection, row["id"])
        return [dict(row)]

    def update(self, collection, key, payload):
        table = self._table(collection)
        matched = [r for r in table if _row_matches(r, key)]
        if not matched:
            raise StoreError(f"No row in '{collection}' matches {_key_desc(key)}")
        matched_ids = {id(r) for r in matched}
        ucol = self.unique.get(collection)
        if ucol and ucol in payload:
            clash = [r for r in table if r.get(ucol) == payload.get(ucol) and id(r) not in matched_ids]
            if clash:
                raise StoreError(f'duplicate key value violates unique constraint "{collection}_{ucol}_key"')
        for r in matched:
            r.update(payload)
        return [dict(r) for r in matched]

    def delete(self, collection, key):
        table = self._table(collection)
        matched = [r for r in table if _row_matches(r, key)]
        if not matched:
            raise StoreError(f"No row in '{collection}' matches {_key_desc(key)}")
        matched_ids = {id(r) for r in matched}
        self.tables[collection] = [r for r in table if id(r) not in matched_ids]
        return [dict(r) for r in matched]


# -------------------------------
# Factory
# -------------------------------

def connect_supabase(cfg: dict):
    """Create a Supabase client from configured credentials."""
    from supabase import create_client

    url, key = get_supabase_credentials(cfg)
    return create_client(url, key)


def open_store(cfg: dict, client=None) -> BaseStore:
    """Return the store adapter selected by configuration."""
    backend = get_store_backend(cfg)
    if backend == "memory":
        seed = get_seed_file(cfg)
        store = MemoryStore.from_seed_file(seed) if seed is not None else MemoryStore()
        for collection in MEMORY_COLLECTIONS:
            store.create_collection(collection)
        return store
    if client is None:
        client = connect_supabase(cfg)
    return SupabaseStore(client)

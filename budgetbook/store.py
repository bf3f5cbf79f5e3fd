# budgetbook/store.py
"""
Keyed-record storage.

Every record is a JSON-serializable dict with an ``id`` and a ``userId``.
``RecordStore`` holds the CRUD logic once; subclasses only know how to load
and save a whole list (users, or one collection of one user).
"""
from __future__ import annotations

import copy
import json
import shutil
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from budgetbook.dates import now_iso
from budgetbook.errors import StoreError

COLLECTIONS = ("categories", "transactions", "recurring")

Record = Dict[str, Any]


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}")


class RecordStore:
    def __init__(self):
        self._lock = threading.RLock()

    # ---- primitives ----
    def _load_users(self) -> List[Record]:
        raise NotImplementedError

    def _save_users(self, users: List[Record]) -> None:
        raise NotImplementedError

    def _load(self, collection: str, user_id: str) -> List[Record]:
        raise NotImplementedError

    def _save(self, collection: str, user_id: str, rows: List[Record]) -> None:
        raise NotImplementedError

    def _drop_user_data(self, user_id: str) -> None:
        raise NotImplementedError

    # ---- users ----
    def get_all_users(self) -> List[Record]:
        with self._lock:
            return copy.deepcopy(self._load_users())

    def get_user(self, user_id: str) -> Optional[Record]:
        with self._lock:
            for u in self._load_users():
                if u.get("id") == user_id:
                    return copy.deepcopy(u)
        return None

    def get_user_by_name(self, name: str) -> Optional[Record]:
        needle = (name or "").strip().lower()
        with self._lock:
            for u in self._load_users():
                if (u.get("name") or "").strip().lower() == needle:
                    return copy.deepcopy(u)
        return None

    def user_exists(self, user_id: str) -> bool:
        return self.get_user(user_id) is not None

    def insert_user(self, user: Record) -> Record:
        with self._lock:
            users = self._load_users()
            users.append(copy.deepcopy(user))
            self._save_users(users)
        return user

    def update_user(self, user_id: str, fields: Record) -> Optional[Record]:
        with self._lock:
            users = self._load_users()
            for i, u in enumerate(users):
                if u.get("id") == user_id:
                    merged = {**u, **fields, "id": user_id, "updatedAt": now_iso()}
                    users[i] = merged
                    self._save_users(users)
                    return copy.deepcopy(merged)
        return None

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            users = self._load_users()
            kept = [u for u in users if u.get("id") != user_id]
            if len(kept) == len(users):
                return False
            self._save_users(kept)
            self._drop_user_data(user_id)
        return True

    # ---- per-user collections ----
    def get_all(self, collection: str, user_id: str) -> List[Record]:
        _check_collection(collection)
        with self._lock:
            rows = self._load(collection, user_id)
            return [copy.deepcopy(r) for r in rows if r.get("userId") == user_id]

    def get_by_id(self, collection: str, record_id: str, user_id: str) -> Optional[Record]:
        _check_collection(collection)
        with self._lock:
            for r in self._load(collection, user_id):
                if r.get("id") == record_id and r.get("userId") == user_id:
                    return copy.deepcopy(r)
        return None

    def insert(self, collection: str, record: Record, user_id: str) -> Record:
        return self.insert_many(collection, [record], user_id)[0]

    def insert_many(self, collection: str, records: List[Record], user_id: str) -> List[Record]:
        _check_collection(collection)
        out = []
        for r in records:
            if not r.get("id"):
                raise ValueError("Record is missing 'id'")
            out.append({**r, "userId": user_id})
        with self._lock:
            rows = self._load(collection, user_id)
            rows.extend(copy.deepcopy(out))
            self._save(collection, user_id, rows)
        return out

    def update(self, collection: str, record_id: str, fields: Record, user_id: str) -> Optional[Record]:
        """Shallow-merge ``fields`` into the record; None when it is not this user's."""
        _check_collection(collection)
        with self._lock:
            rows = self._load(collection, user_id)
            for i, r in enumerate(rows):
                if r.get("id") == record_id and r.get("userId") == user_id:
                    merged = {**r, **fields, "id": record_id, "userId": user_id, "updatedAt": now_iso()}
                    rows[i] = merged
                    self._save(collection, user_id, rows)
                    return copy.deepcopy(merged)
        return None

    def delete(self, collection: str, record_id: str, user_id: str) -> bool:
        _check_collection(collection)
        with self._lock:
            rows = self._load(collection, user_id)
            kept = [r for r in rows if not (r.get("id") == record_id and r.get("userId") == user_id)]
            if len(kept) == len(rows):
                return False
            self._save(collection, user_id, kept)
        return True

    def delete_all(self, collection: str, user_id: str) -> int:
        _check_collection(collection)
        with self._lock:
            rows = self._load(collection, user_id)
            kept = [r for r in rows if r.get("userId") != user_id]
            self._save(collection, user_id, kept)
        return len(rows) - len(kept)


class MemoryStore(RecordStore):
    """Dict-backed store; nothing touches disk."""

    def __init__(self):
        super().__init__()
        self._users: List[Record] = []
        self._data: Dict[str, Dict[str, List[Record]]] = {}

    def _load_users(self):
        return copy.deepcopy(self._users)

    def _save_users(self, users):
        self._users = copy.deepcopy(users)

    def _load(self, collection, user_id):
        return copy.deepcopy(self._data.get(user_id, {}).get(collection, []))

    def _save(self, collection, user_id, rows):
        self._data.setdefault(user_id, {})[collection] = copy.deepcopy(rows)

    def _drop_user_data(self, user_id):
        self._data.pop(user_id, None)


class JsonFileStore(RecordStore):
    """
    Layout under ``base_dir``::

        users.json
        users/<userId>/categories.json
        users/<userId>/transactions.json
        users/<userId>/recurring.json
    """

    def __init__(self, base_dir):
        super().__init__()
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _users_path(self) -> Path:
        return self.base_dir / "users.json"

    def _user_dir(self, user_id: str) -> Path:
        # user ids are generated uuids; refuse anything that could escape base_dir
        if not user_id or "/" in user_id or "\\" in user_id or user_id in (".", ".."):
            raise ValueError(f"Invalid user id: {user_id!r}")
        return self.base_dir / "users" / user_id

    def _read_list(self, path: Path) -> List[Record]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read {path}: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"Expected a JSON list in {path}")
        return data

    def _write_list(self, path: Path, rows: List[Record]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e

    def _load_users(self):
        return self._read_list(self._users_path())

    def _save_users(self, users):
        self._write_list(self._users_path(), users)

    def _load(self, collection, user_id):
        return self._read_list(self._user_dir(user_id) / f"{collection}.json")

    def _save(self, collection, user_id, rows):
        self._write_list(self._user_dir(user_id) / f"{collection}.json", rows)

    def _drop_user_data(self, user_id):
        shutil.rmtree(self._user_dir(user_id), ignore_errors=True)

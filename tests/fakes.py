"""
In-memory stand-in for the parts of the Supabase client the app uses.
"""

import copy
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional


class FakeAPIError(Exception):
    """Mimics postgrest.exceptions.APIError."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class FakeStorageException(Exception):
    pass


class FakeResponse:
    def __init__(self, data):
        self.data = data


def _ilike(value: Optional[str], pattern: str) -> bool:
    if value is None:
        return False
    needle = pattern.strip("%").replace("\\%", "%").replace("\\_", "_")
    return needle.lower() in value.lower()


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column: str, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def or_(self, condition: str):
        clauses = []
        for clause in condition.split(","):
            column, operator, pattern = clause.split(".", 2)
            assert operator == "ilike"
            clauses.append((column, pattern))
        self.filters.append(
            lambda row: any(_ilike(row.get(column), pattern) for column, pattern in clauses)
        )
        return self

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [name.strip() for name in self.columns.split(",")]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.db.tables[self.table] if all(f(row) for f in self.filters)]

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.action))
        failure = self.db.failures.get((self.table, self.action))
        if failure is not None:
            raise failure

        rows = self.db.tables[self.table]
        if self.action == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                row = self.db.defaults(self.table)
                row.update(copy.deepcopy(payload))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        if self.action == "update":
            updated = []
            for row in self._matching():
                row.update(copy.deepcopy(self.payload))
                updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.action == "delete":
            doomed = self._matching()
            self.db.tables[self.table] = [row for row in rows if row not in doomed]
            return FakeResponse([copy.deepcopy(row) for row in doomed])

        selected = self._matching()
        for column, desc in reversed(self.orders):
            selected = sorted(selected, key=lambda row: row.get(column), reverse=desc)
        if self.row_limit is not None:
            selected = selected[: self.row_limit]
        return FakeResponse([self._project(row) for row in selected])


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.calls.append(("rpc", self.name))
        procedure = self.db.procedures.get(self.name)
        if procedure is None:
            raise FakeAPIError(
                f"Could not find the function public.{self.name}(note_id) in the schema cache",
                code="PGRST202",
            )
        return FakeResponse(procedure(self.db, **self.params))


class FakeBucket:
    def __init__(self, db: "FakeSupabase", name: str):
        self.db = db
        self.name = name

    @property
    def objects(self) -> Dict[str, bytes]:
        return self.db.buckets.setdefault(self.name, {})

    def _check(self, operation: str):
        self.db.calls.append(("storage", operation))
        failure = self.db.failures.get(("storage", operation))
        if failure is not None:
            raise failure

    def upload(self, path: str, file: bytes, file_options=None):
        self._check("upload")
        if path in self.objects:
            raise FakeStorageException(
                {"statusCode": "409", "error": "Duplicate", "message": "The resource already exists"}
            )
        self.objects[path] = file
        self.db.content_types[path] = (file_options or {}).get("content-type")
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def download(self, path: str) -> bytes:
        self._check("download")
        if path not in self.objects:
            raise FakeStorageException(
                {"statusCode": "404", "error": "not_found", "message": "Object not found"}
            )
        return self.objects[path]

    def remove(self, paths: List[str]):
        self._check("remove")
        removed = []
        for path in paths:
            if self.objects.pop(path, None) is not None:
                removed.append({"name": path})
        return removed

    def create_signed_url(self, path: str, expires_in: int):
        self._check("sign")
        if path not in self.objects:
            raise FakeStorageException(
                {"statusCode": "404", "error": "not_found", "message": "Object not found"}
            )
        url = f"https://fake.supabase.co/storage/v1/object/sign/{self.name}/{path}?token=t&ttl={expires_in}"
        return {"signedURL": url, "signedUrl": url}

    def get_public_url(self, path: str) -> str:
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}

    def add_user(self, token: str, user_id: str, email: str, **metadata):
        self.users[token] = SimpleNamespace(id=user_id, email=email, user_metadata=metadata)

    def get_user(self, token: str):
        if token not in self.users:
            raise FakeAPIError("invalid JWT", code="401")
        return SimpleNamespace(user=self.users[token])


def increment_column(column: str):
    def procedure(db: "FakeSupabase", note_id: str):
        for row in db.tables["notes"]:
            if row["id"] == note_id:
                row[column] += 1
        return None

    return procedure


class FakeSupabase:
    def __init__(self, atomic_counters: bool = True):
        self.tables: Dict[str, List[Dict[str, Any]]] = {"notes": [], "profiles": []}
        self.buckets: Dict[str, Dict[str, bytes]] = {}
        self.content_types: Dict[str, Optional[str]] = {}
        self.failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self.procedures: Dict[str, Callable] = {}
        if atomic_counters:
            self.procedures["increment_view_count"] = increment_column("view_count")
            self.procedures["increment_download_count"] = increment_column("download_count")
        self.auth = FakeAuth()
        self.storage = SimpleNamespace(from_=lambda bucket: FakeBucket(self, bucket))
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def defaults(self, table: str) -> Dict[str, Any]:
        self._clock += timedelta(seconds=1)
        row = {"id": str(uuid.uuid4()), "created_at": self._clock.isoformat()}
        if table == "profiles":
            row.update(anonymous_uploads=False, email_notifications=True, full_name=None)
        return row

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def fail(self, target: str, action: str, error: Optional[Exception] = None):
        self.failures[(target, action)] = error or FakeAPIError(
            f"{target}.{action} unavailable", code="500"
        )

    def seed_note(self, **fields) -> Dict[str, Any]:
        row = self.defaults("notes")
        row.update(
            title="Untitled",
            course="CS 101",
            lecturer="Dr. Smith",
            description=None,
            file_path=f"user-1/{len(self.tables['notes'])}.pdf",
            file_type="pdf",
            tags=[],
            uploader_id="user-1",
            uploader_name="Alice Example",
            download_count=0,
            view_count=0,
        )
        row.update(fields)
        self.tables["notes"].append(row)
        return copy.deepcopy(row)

    def seed_profile(self, **fields) -> Dict[str, Any]:
        row = self.defaults("profiles")
        row.update(fields)
        self.tables["profiles"].append(row)
        return copy.deepcopy(row)

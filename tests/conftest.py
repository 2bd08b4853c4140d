# tests/conftest.py

"""
Pytest Fixtures - an in-memory stand-in for the Supabase table API and sample rows.

FakeSupabase implements the part of the query builder that database.py uses:
table().select().eq().neq().in_().order().limit().execute() plus insert,
update, upsert and delete. Rows get ids of the form '<table>-<n>'.
Its storage keeps uploaded files per bucket in a dict.
"""

import copy
from collections import defaultdict
from datetime import date

import pytest

import database


# =============================================================================
# FAKE SUPABASE CLIENT
# =============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.payload = None
        self.on_conflict = "id"
        self.filters = []
        self.order_by = None
        self.max_rows = None

    def select(self, *columns):
        self.action = "select"
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def upsert(self, data, on_conflict="id"):
        self.action, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def _new_row(self, data):
        row = copy.deepcopy(data)
        self.client.counter += 1
        row.setdefault("id", f"{self.table}-{self.client.counter}")
        row.setdefault("created_at", f"2026-01-01T00:00:{self.client.counter:02d}")
        return row

    def execute(self):
        rows = self.client.tables[self.table]
        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            added = [self._new_row(item) for item in items]
            rows.extend(added)
            return FakeResponse(copy.deepcopy(added))
        if self.action == "upsert":
            key = self.on_conflict
            existing = next((r for r in rows if r.get(key) == self.payload.get(key)), None)
            if existing:
                existing.update(copy.deepcopy(self.payload))
                return FakeResponse([copy.deepcopy(existing)])
            row = self._new_row(self.payload)
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])
        if self.action == "update":
            changed = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    changed.append(copy.deepcopy(row))
            return FakeResponse(changed)
        if self.action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.client.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse(removed)

        result = [copy.deepcopy(r) for r in rows if self._matches(r)]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda r: (r.get(column) is None, str(r.get(column))), reverse=desc)
        if self.max_rows is not None:
            result = result[:self.max_rows]
        return FakeResponse(result)


class FakeBucket:
    def __init__(self, name, files):
        self.name = name
        self.files = files

    def upload(self, path, file, file_options=None):
        self.files[path] = file

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.files.pop(path, None)


class FakeStorage:
    def __init__(self):
        self.buckets = defaultdict(dict)

    def from_(self, name):
        return FakeBucket(name, self.buckets[name])

    def list_buckets(self):
        return list(self.buckets)


class FakeSupabase:
    def __init__(self):
        self.tables = defaultdict(list)
        self.counter = 0
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables[name]


@pytest.fixture
def fake_db(monkeypatch):
    """Replaces the module-level Supabase client with an empty in-memory one."""
    client = FakeSupabase()
    monkeypatch.setattr(database, "sb", client)
    return client


# =============================================================================
# RUBRIC FIXTURES
# =============================================================================

@pytest.fixture
def rubric():
    """Ten-point rubric with maxima 4 / 3 / 3."""
    return {
        "id": "r1",
        "name": "Council Rubric",
        "criteria": [
            {"id": "content", "name": "Content", "max_score": 4, "plo": "1", "pi": "1.1", "clo": "1"},
            {"id": "slides", "name": "Slides", "max_score": 3, "plo": "1", "pi": "", "clo": "2"},
            {"id": "qa", "name": "Q&A", "max_score": 3, "plo": "2", "pi": "2.1", "clo": "2"},
        ],
    }


# =============================================================================
# SEEDED DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def seeded(fake_db):
    """
    One ongoing session with rubrics, two supervisors, three registered students
    and a subcommittee holding both supervisors.
    """
    database.seed_default_rubrics()
    rubric_ids = {r["name"]: r["id"] for r in database.get_rubrics()}

    for name in ("Dr. Tran", "Dr. Le"):
        database.add_supervisor(name, f"{name[4:].lower()}@uni.edu", "CS")
    for sid, first in (("S001", "An"), ("S002", "Binh"), ("S003", "Chi")):
        database.add_student(sid, first, "Nguyen", f"{sid.lower()}@uni.edu", "CS")
    supervisors = {s["name"]: s["id"] for s in fake_db.rows("supervisors")}
    students = {s["student_id"]: s["id"] for s in fake_db.rows("students")}

    ok, session_id = database.create_session(
        name="Spring Defense", session_type="combined", start_date=date(2026, 2, 2),
        registration_deadline=date(2026, 2, 20),
        rubric_ids={
            "council_graduation": rubric_ids["Council - Graduation Defense"],
            "supervisor_graduation": rubric_ids["Supervisor - Graduation Project"],
            "council_internship": rubric_ids["Council - Internship Report"],
            "company_internship": rubric_ids["Company - Internship Evaluation"],
        },
    )
    assert ok, session_id
    database.update_session_status(session_id, "ongoing")
    database.add_registrations(session_id, list(students.values()))
    database.create_subcommittee(session_id, "Subcommittee 1")
    sc_id = fake_db.rows("subcommittees")[0]["id"]
    database.add_subcommittee_member(sc_id, supervisors["Dr. Tran"], "Head")
    database.add_subcommittee_member(sc_id, supervisors["Dr. Le"], "Secretary")

    registrations = {r["student_id"]: r["id"] for r in fake_db.rows("defense_registrations")}
    return {
        "session_id": session_id,
        "rubrics": rubric_ids,
        "supervisors": supervisors,
        "students": students,
        "registrations": registrations,
        "subcommittee_id": sc_id,
    }

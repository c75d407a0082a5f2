"""
Shared fixtures: in-memory stores standing in for the PostgreSQL-backed ones.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from edu_cms_server.cms.categories import CategoryService
from edu_cms_server.cms.questions import QuestionService
from edu_cms_server.db.models import Category, Question

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeDocumentStore:
    """Minimal list-backed version of DocumentStore."""

    model = None

    def __init__(self):
        self.rows: List[Any] = []
        self.commits = 0

    def _build(self, record: Dict[str, Any]):
        stamp = _EPOCH + timedelta(seconds=len(self.rows))
        return self.model(id=uuid.uuid4(), created_at=stamp, updated_at=stamp, **record)

    def _matching(self, filters: Optional[Dict[str, Any]]):
        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        return [
            row for row in self.rows
            if all(getattr(row, k) == v for k, v in filters.items())
        ]

    async def commit(self):
        self.commits += 1

    async def count(self, filters=None):
        return len(self._matching(filters))

    async def find(self, filters=None, skip=0, limit=None):
        rows = self._matching(filters)
        end = None if limit is None else skip + limit
        return rows[skip:end]

    async def find_by_id(self, record_id):
        return next((row for row in self.rows if row.id == record_id), None)

    async def find_by_title(self, title):
        return next((row for row in self.rows if row.title == title), None)

    async def insert_many(self, records):
        inserted, duplicates = [], []
        for record in records:
            if any(row.title == record["title"] for row in self.rows):
                duplicates.append(record["title"])
                continue
            row = self._build(record)
            self.rows.append(row)
            inserted.append(row)
        return inserted, duplicates

    async def update_by_id(self, record_id, values):
        row = await self.find_by_id(record_id)
        if row is None:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        return row

    async def delete_by_id(self, record_id):
        row = await self.find_by_id(record_id)
        if row is None:
            return False
        self.rows.remove(row)
        return True

    def seed(self, **record):
        row = self._build(record)
        self.rows.append(row)
        return row


class FakeCategoryStore(FakeDocumentStore):
    model = Category

    def __init__(self):
        super().__init__()
        self.key_lookups: List[List[Any]] = []

    async def find_by_keys(self, keys):
        keys = list(keys)
        self.key_lookups.append(keys)
        wanted = {(title, getattr(t, "value", t)) for title, t in keys}
        return [row for row in self.rows if (row.title, row.type) in wanted]


class FakeQuestionStore(FakeDocumentStore):
    model = Question


@pytest.fixture
def category_store():
    store = FakeCategoryStore()
    store.seed(title="math", type="subjects")
    store.seed(title="physics", type="subjects")
    store.seed(title="algebra", type="chapters")
    store.seed(title="kinematics", type="chapters")
    store.seed(title="linear equations", type="topics")
    store.seed(title="motion", type="topics")
    store.seed(title="easy", type="tags")
    return store


@pytest.fixture
def question_store():
    return FakeQuestionStore()


@pytest.fixture
def category_service(category_store):
    return CategoryService(category_store)


@pytest.fixture
def question_service(question_store, category_service):
    return QuestionService(question_store, category_service)


def make_question(title="what is x?", **overrides):
    payload = {
        "title": title,
        "description": "Solve for x",
        "options": ["1", "2", "3"],
        "correctOption": ["2"],
        "subjects": ["Math"],
        "chapters": ["Algebra"],
        "topics": ["Linear Equations"],
        "type": "mcq",
        "difficulty": "B",
    }
    payload.update(overrides)
    return payload

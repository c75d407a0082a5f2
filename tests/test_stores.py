from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from edu_cms_server.db.category_store import CategoryStore
from edu_cms_server.db.question_store import QuestionStore


def _session(rows=()):
    session = MagicMock()
    result = MagicMock()
    result.all.return_value = list(rows)
    session.scalars = AsyncMock(return_value=result)
    return session


def _sql(stmt, literal=False):
    compile_kwargs = {"literal_binds": True} if literal else {}
    return " ".join(str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs=compile_kwargs)).split())


class TestInsertMany:
    async def test_reports_skipped_titles_in_input_order(self):
        session = _session([SimpleNamespace(title="a"), SimpleNamespace(title="c")])
        records = [{"title": t} for t in ["a", "b", "a", "c"]]

        inserted, duplicates = await QuestionStore(session).insert_many(records)

        assert [row.title for row in inserted] == ["a", "c"]
        assert duplicates == ["b", "a"]

    async def test_single_statement_skips_conflicts(self):
        session = _session()
        records = [{"title": "a"}, {"title": "b"}]

        await QuestionStore(session).insert_many(records)

        session.scalars.assert_awaited_once()
        stmt, params = session.scalars.await_args.args
        sql = _sql(stmt)
        assert sql.startswith("INSERT INTO question")
        assert "ON CONFLICT (title) DO NOTHING" in sql
        assert "RETURNING" in sql
        assert params == records

    async def test_empty_batch_skips_the_database(self):
        session = _session()

        assert await QuestionStore(session).insert_many([]) == ([], [])
        session.scalars.assert_not_awaited()


class TestFindByKeys:
    async def test_one_query_grouped_by_type(self):
        session = _session()

        await CategoryStore(session).find_by_keys([
            ("algebra", "chapters"),
            ("math", "subjects"),
            ("kinematics", "chapters"),
            ("algebra", "chapters"),
        ])

        session.scalars.assert_awaited_once()
        sql = _sql(session.scalars.await_args.args[0], literal=True)
        assert "category.type = 'chapters' AND category.title IN ('algebra', 'kinematics')" in sql
        assert "category.type = 'subjects' AND category.title IN ('math')" in sql
        assert sql.count(" OR ") == 1

    async def test_no_keys_skips_the_database(self):
        session = _session()

        assert await CategoryStore(session).find_by_keys([]) == []
        session.scalars.assert_not_awaited()

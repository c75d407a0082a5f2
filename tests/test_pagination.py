import pytest

from conftest import FakeCategoryStore
from edu_cms_server.cms.pagination import build_page, page_offset, paginate
from edu_cms_server.core.errors import InvalidInputError


@pytest.fixture
def store():
    store = FakeCategoryStore()
    for i in range(25):
        store.seed(title=f"topic {i:02d}", type="topics")
    store.seed(title="math", type="subjects")
    return store


async def test_middle_page(store):
    result = await paginate(store, {"type": "topics"}, page=2, limit=10)

    assert len(result.docs) == 10
    assert result.docs[0].title == "topic 10"
    assert result.total_docs == 25
    assert result.total_pages == 3
    assert result.next_page is True
    assert result.prev_page is True


async def test_last_page(store):
    result = await paginate(store, {"type": "topics"}, page=3, limit=10)

    assert len(result.docs) == 5
    assert result.next_page is False
    assert result.prev_page is True


async def test_page_past_the_end_is_empty(store):
    result = await paginate(store, {"type": "topics"}, page=9, limit=10)

    assert result.docs == []
    assert result.total_pages == 3
    assert result.next_page is False


async def test_none_filters_are_ignored(store):
    result = await paginate(store, {"type": None}, page=1, limit=100)
    assert result.total_docs == 26


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
async def test_non_positive_page_or_limit_rejected(store, page, limit):
    with pytest.raises(InvalidInputError):
        await paginate(store, {}, page=page, limit=limit)


def test_empty_collection():
    result = build_page([], total_docs=0, page=1, limit=10)
    assert result.total_pages == 0
    assert result.next_page is False
    assert result.prev_page is False


def test_offset():
    assert page_offset(1, 10) == 0
    assert page_offset(3, 10) == 20


def test_meta_uses_public_names():
    result = build_page(["a"], total_docs=11, page=1, limit=10)
    assert result.meta() == {
        "totalDocs": 11,
        "limit": 10,
        "totalPages": 2,
        "page": 1,
        "nextPage": True,
        "prevPage": False,
    }
    assert result.map(str.upper).docs == ["A"]

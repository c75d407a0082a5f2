"""
Category Store

Category persistence plus the grouped lookup used by the batched
existence resolver.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Set, Tuple

from sqlalchemy import and_, or_, select

from .document_store import DocumentStore
from .models import Category


def _type_value(category_type) -> str:
    return getattr(category_type, "value", category_type)


class CategoryStore(DocumentStore[Category]):
    model = Category

    async def find_by_keys(self, keys: Iterable[Tuple[str, str]]) -> List[Category]:
        """
        Fetch every category matching any of the given ``(title, type)`` pairs.

        Titles are grouped by type so the lookup is a single statement of the
        form ``(type = t1 AND title IN (...)) OR (type = t2 AND ...)``.

        Parameters
        ----------
        keys : Iterable[Tuple[str, str]]
            Normalized ``(title, type)`` pairs; duplicates are allowed.

        Returns
        -------
        List[Category]
            Matching rows in no particular order.
        """
        titles_by_type: Dict[str, Set[str]] = defaultdict(set)
        for title, category_type in keys:
            titles_by_type[_type_value(category_type)].add(title)

        if not titles_by_type:
            return []

        clauses = [
            and_(Category.type == category_type, Category.title.in_(sorted(titles)))
            for category_type, titles in titles_by_type.items()
        ]
        result = await self._session.scalars(select(Category).where(or_(*clauses)))
        return list(result.all())

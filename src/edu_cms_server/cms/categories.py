"""
Category Service

CRUD over the category taxonomy plus the existence check used by question
validation.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from ..core.errors import DuplicateKeyError, NotFoundError, is_unique_violation
from ..core.validation import parse_object_id, validate_payload, validate_payloads
from ..db.category_store import CategoryStore
from ..db.models import Category
from .loader import CategoryKey, CategoryLoader, create_category_loader
from .models import CategoryCreate, CategoryFilter, CategoryType, CategoryUpdate
from .pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PaginatedResult, paginate

logger = logging.getLogger("edu.cms.categories")

DUPLICATE_MESSAGE = "There are some values that already exist."


def _not_found() -> NotFoundError:
    return NotFoundError("Category not found", title="CATEGORY_NOT_FOUND")


class CategoryService:
    """
    Parameters
    ----------
    store : CategoryStore
        Category persistence bound to the request's session.
    loader : Optional[CategoryLoader]
        Request-scoped batched resolver. A fresh one is built from ``store``
        when omitted.
    """

    def __init__(self, store: CategoryStore, loader: Optional[CategoryLoader] = None) -> None:
        self._store = store
        self._loader = loader if loader is not None else create_category_loader(store)

    # ------------------------------------------------------------------
    # Existence checks
    # ------------------------------------------------------------------

    async def verify_categories_exist(
        self,
        category_type: CategoryType,
        titles: Optional[Sequence[str]] = None,
    ) -> bool:
        """
        Return True iff every title names a stored category of ``category_type``.

        ``titles=None`` is treated as a failed check, not as "nothing to
        check"; an empty list is vacuously True. Titles are normalized before
        lookup and all of them go to the resolver as one batch.
        """
        if titles is None:
            return False

        keys = [CategoryKey.of(title, category_type) for title in titles]
        results = await self._loader.load_many(keys)
        return all(result is not None for result in results)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_categories(self, payloads: Sequence[Any]) -> List[Category]:
        categories = validate_payloads(CategoryCreate, payloads)

        inserted, duplicates = await self._store.insert_many(
            [category.to_record() for category in categories]
        )
        await self._store.commit()
        self._loader.clear_all()

        if duplicates:
            logger.warning(
                "Skipped %d duplicate categories (%d inserted)",
                len(duplicates),
                len(inserted),
            )
            raise DuplicateKeyError(DUPLICATE_MESSAGE, errors=duplicates)

        logger.info("Created %d categories", len(inserted))
        return inserted

    async def get_category_by_id(self, category_id: Any) -> Category:
        category = await self._store.find_by_id(parse_object_id(category_id, "category"))
        if category is None:
            raise _not_found()
        return category

    async def update_category(self, category_id: Any, payload: Mapping[str, Any]) -> Category:
        record_id = parse_object_id(category_id, "category")
        update = validate_payload(CategoryUpdate, payload)
        values = update.to_values()

        try:
            category = await self._store.update_by_id(record_id, values)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateKeyError(DUPLICATE_MESSAGE, errors=[values.get("title")]) from exc
            raise

        if category is None:
            raise _not_found()

        await self._store.commit()
        self._loader.clear_all()
        return category

    async def delete_category(self, category_id: Any) -> str:
        deleted = await self._store.delete_by_id(parse_object_id(category_id, "category"))
        if not deleted:
            raise _not_found()

        await self._store.commit()
        self._loader.clear_all()
        return "Category deleted successfully"

    async def get_all_categories(
        self,
        filters: Optional[CategoryFilter] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> PaginatedResult[Category]:
        filters = filters or CategoryFilter()
        return await paginate(self._store, filters.to_filters(), page, limit)

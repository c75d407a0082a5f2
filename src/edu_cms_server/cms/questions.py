"""
Question Service

Validation and creation pipeline for catalog questions.

Pipeline
--------
1. Structural validation of every payload (pydantic). Any failure stops the
   request before the store is touched.
2. Referential validation: subjects, chapters, topics and tags are checked
   against the category taxonomy. All questions and all fields are verified
   concurrently, so the whole request resolves through one batched lookup.
   Issues accumulate; nothing short-circuits.
3. Any issue fails the whole request with VALIDATION_ERROR.
4. Insertion skips titles that already exist; the rest are committed and the
   skipped titles are reported with DUPLICATE_KEY_ERROR.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from ..core.errors import (
    DuplicateKeyError,
    NotFoundError,
    ValidationFailedError,
    is_unique_violation,
)
from ..core.validation import (
    VALIDATION_MESSAGE,
    parse_object_id,
    validate_payload,
    validate_payloads,
)
from ..db.models import Question
from ..db.question_store import QuestionStore
from .categories import DUPLICATE_MESSAGE, CategoryService
from .models import (
    CATEGORY_FIELDS,
    QuestionCreate,
    QuestionFilter,
    QuestionType,
    QuestionUpdate,
    check_correct_options,
)
from .pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PaginatedResult, paginate

logger = logging.getLogger("edu.cms.questions")

REQUIRED_CATEGORY_FIELDS = frozenset({"subjects", "chapters", "topics"})


def _not_found() -> NotFoundError:
    return NotFoundError("Question not found", title="QUESTION_NOT_FOUND")


class QuestionService:
    def __init__(self, store: QuestionStore, categories: CategoryService) -> None:
        self._store = store
        self._categories = categories

    # ------------------------------------------------------------------
    # Referential validation
    # ------------------------------------------------------------------

    async def reference_issues(
        self,
        references: Mapping[str, Optional[List[str]]],
        index: Optional[int] = None,
        required: Iterable[str] = REQUIRED_CATEGORY_FIELDS,
    ) -> List[Dict[str, Any]]:
        """
        Check the category references of one question.

        Parameters
        ----------
        references : Mapping[str, Optional[List[str]]]
            Category titles per field (``subjects``, ``chapters``, ``topics``,
            ``tags``). Missing or None entries fail the check.
        index : Optional[int]
            Position of the question within a bulk request.
        required : Iterable[str]
            Fields reported even when absent. Optional fields are reported
            only when titles were supplied.

        Returns
        -------
        List[Dict[str, Any]]
            One issue per field with unknown titles.
        """
        required = set(required)
        fields = list(CATEGORY_FIELDS.items())
        results = await asyncio.gather(*[
            self._categories.verify_categories_exist(category_type, references.get(field))
            for field, category_type in fields
        ])

        issues = []
        for (field, _), exists in zip(fields, results):
            if exists:
                continue
            if references.get(field) is None and field not in required:
                continue
            issue: Dict[str, Any] = {
                "path": [field],
                "message": f"Some {field} do not exist",
                "code": "invalid_reference",
            }
            if index is not None:
                issue["index"] = index
            issues.append(issue)
        return issues

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_questions(self, payloads: Sequence[Any]) -> List[Question]:
        questions = validate_payloads(QuestionCreate, payloads)

        per_question = await asyncio.gather(*[
            self.reference_issues(
                {field: getattr(question, field) for field in CATEGORY_FIELDS},
                index=index,
            )
            for index, question in enumerate(questions)
        ])
        issues = [issue for question_issues in per_question for issue in question_issues]
        if issues:
            logger.info("Rejected %d questions with %d reference issues", len(questions), len(issues))
            raise ValidationFailedError(VALIDATION_MESSAGE, errors=issues)

        inserted, duplicates = await self._store.insert_many(
            [question.to_record() for question in questions]
        )
        await self._store.commit()

        if duplicates:
            logger.warning(
                "Skipped %d duplicate questions (%d inserted)",
                len(duplicates),
                len(inserted),
            )
            raise DuplicateKeyError(DUPLICATE_MESSAGE, errors=duplicates)

        logger.info("Created %d questions", len(inserted))
        return inserted

    async def get_question_by_id(self, question_id: Any) -> Question:
        question = await self._store.find_by_id(parse_object_id(question_id, "question"))
        if question is None:
            raise _not_found()
        return question

    async def update_question(self, question_id: Any, payload: Mapping[str, Any]) -> Question:
        """
        Apply a partial update. Only the provided fields are validated, and
        only the provided category fields are checked for existence. Changes to
        ``type``, ``options`` or ``correctOption`` are checked against the
        stored question.
        """
        record_id = parse_object_id(question_id, "question")
        update = validate_payload(QuestionUpdate, payload)

        references = {
            field: getattr(update, field)
            for field in CATEGORY_FIELDS
            if getattr(update, field) is not None
        }
        if references:
            issues = await self.reference_issues(references, required=())
            if issues:
                raise ValidationFailedError(VALIDATION_MESSAGE, errors=issues)

        if {"type", "options", "correct_option"} & update.model_fields_set:
            await self._check_merged_options(record_id, update)

        values = update.to_values()
        try:
            question = await self._store.update_by_id(record_id, values)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateKeyError(DUPLICATE_MESSAGE, errors=[values.get("title")]) from exc
            raise

        if question is None:
            raise _not_found()

        await self._store.commit()
        return question

    async def _check_merged_options(self, record_id: Any, update: QuestionUpdate) -> None:
        """
        Check ``correctOption`` against ``options`` on the stored question
        with the update applied.
        """
        stored = await self._store.find_by_id(record_id)
        if stored is None:
            raise _not_found()

        question_type = update.type or QuestionType(stored.type)
        options = update.options if update.options is not None else stored.options
        correct_option = (
            update.correct_option if update.correct_option is not None else stored.correct_option
        )
        try:
            check_correct_options(question_type, options, correct_option)
        except ValueError as exc:
            raise ValidationFailedError(
                VALIDATION_MESSAGE,
                errors=[{"path": ["correctOption"], "message": str(exc), "code": "invalid_option"}],
            ) from exc

    async def delete_question(self, question_id: Any) -> str:
        deleted = await self._store.delete_by_id(parse_object_id(question_id, "question"))
        if not deleted:
            raise _not_found()

        await self._store.commit()
        return "Question deleted successfully"

    async def get_all_questions(
        self,
        filters: Optional[QuestionFilter] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> PaginatedResult[Question]:
        filters = filters or QuestionFilter()
        return await paginate(self._store, filters.to_filters(), page, limit)

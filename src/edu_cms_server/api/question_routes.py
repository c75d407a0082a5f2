"""
Question Routes

Endpoints under ``/cms/questions``: bulk creation (JSON or CSV), CSV
export and preview, and per-question CRUD.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import Response

from .dependencies import get_question_service
from .uploads import read_bulk_payload, read_csv_upload
from ..cms.csv_io import parse_question_rows, write_question_rows
from ..cms.models import DifficultyLevel, QuestionFilter, QuestionOut, QuestionType
from ..cms.pagination import DEFAULT_LIMIT, DEFAULT_PAGE
from ..cms.questions import QuestionService
from ..core.responses import respond

router = APIRouter(prefix="/cms/questions", tags=["questions"])

Service = Annotated[QuestionService, Depends(get_question_service)]


def _filters(
    difficulty: Optional[DifficultyLevel] = Query(None),
    type: Optional[QuestionType] = Query(None),
) -> QuestionFilter:
    return QuestionFilter(difficulty=difficulty, type=type)


Filters = Annotated[QuestionFilter, Depends(_filters)]


@router.post("", status_code=201, summary="Create questions from JSON or CSV")
async def create_questions(request: Request, service: Service):
    payloads = await read_bulk_payload(request, parse_question_rows)
    created = await service.create_questions(payloads)
    return respond(
        "Questions created successfully",
        [QuestionOut.model_validate(q) for q in created],
        status_code=201,
    )


@router.get("/csv", summary="Export a page of questions as CSV")
async def export_questions(
    service: Service,
    filters: Filters,
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
):
    result = await service.get_all_questions(filters, page, limit)
    return Response(
        content=write_question_rows(result.docs),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="questions.csv"'},
    )


@router.post("/csv", summary="Parse a question CSV without saving it")
async def read_questions_csv(request: Request):
    rows = parse_question_rows(await read_csv_upload(request))
    return respond("CSV parsed successfully", rows)


@router.get("", summary="List questions")
async def get_all_questions(
    service: Service,
    filters: Filters,
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
):
    result = await service.get_all_questions(filters, page, limit)
    return respond(
        "Questions fetched successfully",
        [QuestionOut.model_validate(q) for q in result.docs],
        **result.meta(),
    )


@router.get("/{question_id}", summary="Get a question")
async def get_question(question_id: str, service: Service):
    question = await service.get_question_by_id(question_id)
    return respond("Question fetched successfully", QuestionOut.model_validate(question))


@router.put("/{question_id}", summary="Update a question")
async def update_question(
    question_id: str,
    service: Service,
    payload: Dict[str, Any] = Body(...),
):
    question = await service.update_question(question_id, payload)
    return respond("Question updated successfully", QuestionOut.model_validate(question))


@router.delete("/{question_id}", summary="Delete a question")
async def delete_question(question_id: str, service: Service):
    message = await service.delete_question(question_id)
    return respond(message)

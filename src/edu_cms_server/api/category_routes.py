"""
Category Routes

CRUD endpoints for the category taxonomy under ``/cms/categories``.
Bulk creation accepts a JSON array or a CSV upload.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from .dependencies import get_category_service
from .uploads import read_bulk_payload
from ..cms.categories import CategoryService
from ..cms.csv_io import parse_category_rows
from ..cms.models import CategoryFilter, CategoryOut, CategoryType
from ..cms.pagination import DEFAULT_LIMIT, DEFAULT_PAGE
from ..core.responses import respond

router = APIRouter(prefix="/cms/categories", tags=["categories"])

Service = Annotated[CategoryService, Depends(get_category_service)]


@router.post("", status_code=201, summary="Create categories from JSON or CSV")
async def create_categories(request: Request, service: Service):
    payloads = await read_bulk_payload(request, parse_category_rows)
    created = await service.create_categories(payloads)
    return respond(
        "Categories created successfully",
        [CategoryOut.model_validate(c) for c in created],
        status_code=201,
    )


@router.get("", summary="List categories")
async def get_all_categories(
    service: Service,
    page: int = Query(DEFAULT_PAGE),
    limit: int = Query(DEFAULT_LIMIT),
    type: Optional[CategoryType] = Query(None),
):
    result = await service.get_all_categories(CategoryFilter(type=type), page, limit)
    return respond(
        "Categories fetched successfully",
        [CategoryOut.model_validate(c) for c in result.docs],
        **result.meta(),
    )


@router.get("/{category_id}", summary="Get a category")
async def get_category(category_id: str, service: Service):
    category = await service.get_category_by_id(category_id)
    return respond("Category fetched successfully", CategoryOut.model_validate(category))


@router.put("/{category_id}", summary="Update a category")
async def update_category(
    category_id: str,
    service: Service,
    payload: Dict[str, Any] = Body(...),
):
    category = await service.update_category(category_id, payload)
    return respond("Category updated successfully", CategoryOut.model_validate(category))


@router.delete("/{category_id}", summary="Delete a category")
async def delete_category(category_id: str, service: Service):
    message = await service.delete_category(category_id)
    return respond(message)

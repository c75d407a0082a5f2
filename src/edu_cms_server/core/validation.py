"""
Payload validation helpers shared by the service layer.
"""

from __future__ import annotations

import uuid
from typing import Any, List, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import (
    InvalidInputError,
    InvalidObjectIdError,
    ValidationFailedError,
    issues_from_validation_error,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

VALIDATION_MESSAGE = "Validation error in provided data."


def validate_payloads(model: Type[ModelT], payloads: Sequence[Any]) -> List[ModelT]:
    """
    Validate every payload of a bulk request against ``model``.

    All payloads are checked before failing so the error lists every issue,
    each tagged with the index of its payload.

    Raises
    ------
    InvalidInputError
        If ``payloads`` is not a list.
    ValidationFailedError
        If any payload fails validation.
    """
    if not isinstance(payloads, (list, tuple)):
        raise InvalidInputError("Data must be an array of objects or a CSV file.")

    validated: List[ModelT] = []
    issues = []
    for index, payload in enumerate(payloads):
        try:
            validated.append(model.model_validate(payload))
        except ValidationError as exc:
            issues.extend(issues_from_validation_error(exc, index=index))

    if issues:
        raise ValidationFailedError(VALIDATION_MESSAGE, errors=issues)
    return validated


def validate_payload(model: Type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailedError(
            VALIDATION_MESSAGE,
            errors=issues_from_validation_error(exc),
        ) from exc


def parse_object_id(value: Any, entity: str) -> uuid.UUID:
    """
    Parse a record id, raising INVALID_OBJECTID for malformed values.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidObjectIdError(f"Invalid {entity} ID") from None

"""
Bulk Payload Reading

Bulk create endpoints accept either a JSON array or a multipart upload with a
CSV ``file`` field. Both end up as a list of payload dicts for the services.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from fastapi import Request
from starlette.datastructures import UploadFile

from ..config import settings
from ..core.errors import InvalidInputError
from ..cms.csv_io import InvalidFileError, decode_csv

CSV_CONTENT_TYPES = frozenset({"text/csv", "application/csv", "application/vnd.ms-excel"})


class FileTooLargeError(InvalidFileError):
    title = "FILE_TOO_LARGE"


async def read_csv_upload(request: Request) -> str:
    """
    Return the text of the ``file`` field of a multipart request.

    Raises
    ------
    InvalidFileError
        Missing file, wrong content type or undecodable content.
    FileTooLargeError
        Upload larger than ``UPLOAD_MAX_BYTES``.
    """
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise InvalidFileError("Expected a CSV upload in the 'file' field.")

    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in CSV_CONTENT_TYPES:
        raise InvalidFileError(f"Unsupported file type: {content_type or 'unknown'}")

    content = await upload.read(settings.upload_max_bytes + 1)
    if len(content) > settings.upload_max_bytes:
        raise FileTooLargeError(
            f"File exceeds the maximum size of {settings.upload_max_bytes} bytes."
        )
    return decode_csv(content)


async def read_bulk_payload(
    request: Request,
    parse_csv: Callable[[str], List[Dict[str, Any]]],
) -> List[Any]:
    """
    Read a bulk create body as a list of payloads.

    Parameters
    ----------
    request : Request
        Incoming request; multipart bodies are treated as CSV uploads.
    parse_csv : Callable[[str], List[Dict[str, Any]]]
        Turns CSV text into payload dicts.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        return parse_csv(await read_csv_upload(request))

    try:
        body = await request.json()
    except ValueError as exc:
        raise InvalidInputError("Request body is not valid JSON.") from exc

    if not isinstance(body, list):
        raise InvalidInputError("Data must be an array of objects or a CSV file.")
    return body

"""
CSV Import / Export

Turns uploaded CSV text into plain payload dicts, shaped exactly like JSON
bulk payloads so both go through the same validation, and renders questions
back to CSV.

List cells hold ``;``-separated items (written as ``"; "``).
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, List, Optional

from ..core.errors import APIError

CATEGORY_COLUMNS = ["title", "type", "parent"]

QUESTION_COLUMNS = [
    "title",
    "description",
    "options",
    "subjects",
    "chapters",
    "topics",
    "correctOption",
    "type",
    "difficulty",
    "author",
    "tags",
    "hints",
    "points",
    "source",
]
QUESTION_LIST_COLUMNS = {"options", "subjects", "chapters", "topics", "correctOption", "tags"}

LIST_SEPARATOR = ";"


class InvalidFileError(APIError):
    status_code = 400
    title = "INVALID_FILE"


def decode_csv(content: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8, dropping a byte order mark if present.
    """
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise InvalidFileError("CSV file must be UTF-8 encoded.") from exc


def split_list(cell: Optional[str]) -> List[str]:
    if not cell:
        return []
    return [item.strip() for item in cell.split(LIST_SEPARATOR) if item.strip()]


def join_list(items: Optional[Iterable[str]]) -> str:
    return f"{LIST_SEPARATOR} ".join(items or [])


def _rows(text: str) -> Iterable[Dict[str, Optional[str]]]:
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        raise InvalidFileError("CSV file has no header row.")
    for row in reader:
        # Extra cells beyond the header land under the None key
        row.pop(None, None)
        if any((value or "").strip() for value in row.values()):
            yield row


def _cell(row: Dict[str, Optional[str]], column: str) -> Optional[str]:
    value = row.get(column)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_category_rows(text: str) -> List[Dict[str, Any]]:
    """
    Parse category CSV (``title, type, parent``) into payload dicts.
    """
    payloads = []
    for row in _rows(text):
        payload = {
            column: _cell(row, column)
            for column in CATEGORY_COLUMNS
            if _cell(row, column) is not None
        }
        payloads.append(payload)
    return payloads


def parse_question_rows(text: str) -> List[Dict[str, Any]]:
    """
    Parse question CSV into payload dicts.

    Empty cells are left out so that required columns surface as missing
    fields during validation. ``points`` is converted when it is an integer
    and passed through untouched otherwise.
    """
    payloads = []
    for row in _rows(text):
        payload: Dict[str, Any] = {}
        for column in QUESTION_COLUMNS:
            value = _cell(row, column)
            if value is None:
                continue
            if column in QUESTION_LIST_COLUMNS:
                payload[column] = split_list(value)
            elif column == "points":
                payload[column] = int(value) if value.lstrip("-").isdigit() else value
            else:
                payload[column] = value
        payloads.append(payload)
    return payloads


def write_question_rows(questions: Iterable[Any]) -> str:
    """
    Render questions (ORM rows or objects with the same attributes) as CSV text.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=QUESTION_COLUMNS)
    writer.writeheader()

    for question in questions:
        writer.writerow({
            "title": question.title,
            "description": question.description,
            "options": join_list(question.options),
            "subjects": join_list(question.subjects),
            "chapters": join_list(question.chapters),
            "topics": join_list(question.topics),
            "correctOption": join_list(question.correct_option),
            "type": question.type,
            "difficulty": question.difficulty,
            "author": question.author or "",
            "tags": join_list(question.tags),
            "hints": question.hints or "",
            "points": question.points if question.points is not None else 0,
            "source": question.source or "",
        })

    return buffer.getvalue()

"""
Question Store
"""

from __future__ import annotations

from .document_store import DocumentStore
from .models import Question


class QuestionStore(DocumentStore[Question]):
    model = Question

"""Question catalog loading."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from src.models import Question


def load_question_catalog(path: str | Path) -> tuple[Question, ...]:
    """Load the fixed question sequence from a JSON file.

    Accepts a list of `{question, maxScore}` objects or an object with a
    `questions` list.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise ValueError(f"Question catalog not found: {catalog_path}")
    try:
        data = json.loads(catalog_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid question catalog {catalog_path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ValueError("Question catalog must be a list or an object with 'questions'.")
    try:
        return tuple(Question.model_validate(item) for item in data)
    except ValidationError as exc:
        raise ValueError(f"Invalid question in {catalog_path}: {exc}") from exc

"""Helpers shared by the repositories."""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic

from katalog.errors import ValidationError

W = TypeVar("W", bound=pydantic.BaseModel)


def validate_write(model: type[W], fields: dict[str, Any]) -> W:
    """Validate a write payload, reporting the first problem as a ValidationError."""
    try:
        return model.model_validate(fields)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "payload"
        raise ValidationError(f"{location}: {first['msg']}") from e


def set_clause(columns: dict[str, Any], start: int = 2) -> str:
    """
    Build "col = $2, other = $3" for an UPDATE.

    Column names come from a validated pydantic model with extra="forbid",
    never from caller strings.
    """
    return ", ".join(f"{name} = ${i + start}" for i, name in enumerate(columns))


def insert_clause(columns: dict[str, Any]) -> tuple[str, str]:
    """Column list and placeholder list for an INSERT."""
    names = ", ".join(columns)
    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    return names, placeholders

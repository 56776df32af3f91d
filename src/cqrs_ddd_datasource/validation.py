"""Pydantic-backed descriptor validation."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

TModel = TypeVar("TModel", bound=BaseModel)


def errors_from_pydantic(exc: PydanticValidationError) -> dict[str, list[str]]:
    """Flatten a pydantic error into ``{location: [messages]}``."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ())) or "__root__"
        msg = error.get("msg", "validation error")
        errors.setdefault(loc, []).append(msg)
    return errors


def validate_model(model_cls: type[TModel], data: Any) -> TModel:
    """
    Return *data* as a validated ``model_cls`` instance.

    Instances of ``model_cls`` are returned unchanged; mappings are validated.
    Pydantic failures are re-raised as the package :class:`ValidationError`.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(errors_from_pydantic(exc)) from exc

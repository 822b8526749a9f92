"""Validation wrapper layer between regex matchers and emitted events.

Matchers hand raw regex groups to ``build_model``; a Pydantic
``ValidationError`` means the line only looked like the grammar (for
example a kill line without coordinates) and is treated as "no match",
never as an error.

Usage::

    from cs2logs.validation import build_model
    from cs2logs.models import KillEvent

    event = build_model(KillEvent, data, line_index=42)
    if event is not None:
        ...
"""

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_model(
    model_cls: type[ModelT],
    data: dict,
    line_index: int | None = None,
) -> ModelT | None:
    """Validate a dict against a Pydantic model, returning None on failure.

    Args:
        model_cls: Pydantic model class (e.g. KillEvent).
        data: Field values extracted from the log line.
        line_index: Position of the source line, for the debug message.

    Returns:
        The validated model instance, or ``None`` if validation failed.
    """
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        logger.debug(
            "Line %s rejected as %s: %s",
            line_index,
            model_cls.__name__,
            e,
        )
        return None


def build_models(
    items: list[dict],
    model_cls: type[ModelT],
    line_index: int | None = None,
) -> tuple[list[ModelT], int]:
    """Validate a list of dicts, returning valid models and a reject count."""
    valid: list[ModelT] = []
    rejected = 0

    for item in items:
        result = build_model(model_cls, item, line_index)
        if result is not None:
            valid.append(result)
        else:
            rejected += 1

    return valid, rejected

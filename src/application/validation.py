"""Shared validation utilities for the application layer.

Entities validate themselves on construction; these helpers add the logging
the services want around that, so rejected payloads show up in monitoring.
"""

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from ..domain.exceptions import ValidationError
from ..logging_config import get_logger
from ..logging_utils import log_validation_error

logger = get_logger(__name__)

E = TypeVar("E")


def _log_rejection(e: ValidationError, payload: Mapping[str, Any], entity_type: str):
    value = payload.get(e.field) if e.field else None
    log_validation_error(e.field, value, str(e))
    logger.warning(
        f"{entity_type.capitalize()} rejected",
        entity_type=entity_type,
        field=e.field,
        error_code=e.code,
    )


def build_entity_with_logging(
    factory: Callable[..., E], payload: Mapping[str, Any], entity_type: str
) -> E:
    """Construct an entity from a payload, logging validation failures.

    Raises:
        ValidationError: If the payload violates an entity invariant
    """
    try:
        return factory(**payload)
    except ValidationError as e:
        _log_rejection(e, payload, entity_type)
        raise
    except TypeError as e:
        # Missing or unexpected constructor arguments
        logger.warning(
            f"{entity_type.capitalize()} rejected",
            entity_type=entity_type,
            error=str(e),
        )
        raise ValidationError(f"Invalid {entity_type} payload: {e}") from e


def merge_changes_with_logging(
    entity: Any, changes: Mapping[str, Any], entity_type: str
):
    """Apply a partial update through entity.with_changes, logging failures.

    An empty change set is rejected instead of silently touching the record.
    """
    if not changes:
        logger.warning("Empty update rejected", entity_type=entity_type)
        raise ValidationError("No fields to update")
    try:
        return entity.with_changes(changes)
    except ValidationError as e:
        _log_rejection(e, changes, entity_type)
        raise

"""
Field-name to column translation for partial updates.

Callers name fields in camelCase (``personalityTraits``); columns are
snake_case. Each entity gets a fixed table of updatable fields, checked
against the ORM mapping when this module is imported, so no caller-supplied
name is ever turned into SQL.
"""
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import inspect

from harmony.core.exceptions import InvalidFieldValueError, UnknownFieldError
from harmony.models import ArtistDetail, ArtistImage, GenerationHistory

_UPPER = re.compile(r"([A-Z])")


def camel_to_snake(name: str) -> str:
    """Insert '_' before each uppercase letter, then lowercase the whole name."""
    return _UPPER.sub(r"_\1", name).lower()


def build_column_map(model, fields: tuple[str, ...]) -> dict[str, str]:
    """
    Build the lookup table for one entity.

    Both the camelCase field name and the column name itself map to the
    column, so snake_case callers work too.
    """
    columns = {c.key for c in inspect(model).column_attrs}
    table: dict[str, str] = {}
    for field in fields:
        column = camel_to_snake(field)
        if column not in columns:
            raise RuntimeError(f"{model.__name__} has no column {column!r} for field {field!r}")
        table[field] = column
        table[column] = column
    return table


ARTIST_DETAIL_COLUMNS = build_column_map(ArtistDetail, (
    "personalityTraits",
    "visualStyle",
    "speakingStyle",
    "backstory",
    "influences",
    "uniqueElements",
    "generationParameters",
    "performanceMetrics",
    "aiTrainingData",
))

ARTIST_IMAGE_COLUMNS = build_column_map(ArtistImage, (
    "imageUrl",
    "prompt",
    "model",
    "isPrimary",
    "tags",
    "generatedAt",
))

GENERATION_HISTORY_COLUMNS = build_column_map(GenerationHistory, (
    "artistId",
    "generationType",
    "prompt",
    "refinedPrompt",
    "parameters",
    "resultData",
    "serviceUsed",
    "status",
    "errorMessage",
))


def translate_fields(entity: str, table: Mapping[str, str], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Map caller field names to columns, rejecting anything not in the table."""
    unknown = [key for key in updates if key not in table]
    if unknown:
        raise UnknownFieldError(entity, unknown)
    return {table[key]: value for key, value in updates.items()}


def validate_fields(entity: str, schema: type[BaseModel], columns: Mapping[str, Any]) -> dict[str, Any]:
    """
    Coerce translated column values through the entity's update schema.

    Returns only the columns that were given, converted to the column's
    Python type (ISO strings to datetimes, strings to enums).
    """
    try:
        validated = schema.model_validate(columns)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise InvalidFieldValueError(entity, fields) from e
    return validated.model_dump(exclude_unset=True)

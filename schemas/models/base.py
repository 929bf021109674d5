"""
Base model for MongoDB documents.

PyObjectId lets Pydantic v2 validate and serialise BSON ObjectIds.
MongoBaseModel converts between models and raw pymongo dicts and owns the
datetime rule shared by every collection: written as naive UTC, read back
as aware UTC.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from shared.datetime_utils import to_bson_datetime


class PyObjectId(ObjectId):
    """BSON ObjectId that Pydantic v2 knows how to validate and serialize."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


def _to_bson_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_bson_datetime(value)
    if isinstance(value, Enum):
        return value.value
    return value


class MongoBaseModel(BaseModel):
    """
    Base for all document models.

    The MongoDB ``_id`` is exposed as ``id``. Subclasses declare their
    collection fields and normalise datetimes to aware UTC on validation.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Dict ready for insert/replace: no ``_id`` when unset, datetimes
        as naive UTC and enums as their values."""
        data = {
            key: _to_bson_value(value)
            for key, value in self.model_dump(by_alias=True).items()
        }
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]):
        """Model from a raw document, or None when the lookup found nothing."""
        if data is None:
            return None
        return cls.model_validate(data)

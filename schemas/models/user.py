"""
User document model.

Maps to the `users` MongoDB collection. Only the fields the password-reset
and email-verification flows read or write are modelled; other profile data
on the document is ignored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    email: str
    user_name: Optional[str] = None
    first_name: Optional[str] = None
    email_verified: bool = False
    password_hash: Optional[str] = None
    password_set: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def display_name(self) -> Optional[str]:
        return self.first_name or self.user_name

"""Repository for the `users` collection (account fields only)."""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING

from schemas.models.user import UserDoc
from shared.datetime_utils import to_bson_datetime, utcnow

COLLECTION_NAME = "users"


class UserRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("email", ASCENDING)], unique=True, name="email_unique"
        )

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        raw = await self._col.find_one({"email": email.strip().lower()})
        return UserDoc.from_mongo(raw)

    async def update_password(self, user_id: ObjectId, password_hash: str) -> bool:
        result = await self._col.update_one(
            {"_id": user_id},
            {
                "$set": {
                    "password_hash": password_hash,
                    "password_set": True,
                    "updated_at": to_bson_datetime(utcnow()),
                }
            },
        )
        return result.matched_count > 0

    async def mark_email_verified(self, user_id: ObjectId) -> bool:
        result = await self._col.update_one(
            {"_id": user_id},
            {
                "$set": {
                    "email_verified": True,
                    "updated_at": to_bson_datetime(utcnow()),
                }
            },
        )
        return result.matched_count > 0

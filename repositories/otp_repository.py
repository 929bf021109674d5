"""
Repository for the `one-time-codes` collection.

Every state transition is a single atomic document operation so concurrent
requests for the same (email, purpose) never interleave:

- issuance       → find_one_and_replace(upsert=True) on the unique pair
- failed attempt → find_one_and_update with a guarded $inc
- consumption    → find_one_and_update with a guarded $set
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from schemas.models.otp import OneTimeCodeDoc, OtpPurpose
from shared.datetime_utils import to_bson_datetime, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "one-time-codes"


class OtpRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("email", ASCENDING), ("purpose", ASCENDING)],
            unique=True,
            name="email_purpose_unique",
        )
        await self._col.create_index(
            [("expires_at", ASCENDING)],
            expireAfterSeconds=0,
            name="expires_at_ttl",
        )

    async def replace_for_pair(self, doc: OneTimeCodeDoc) -> OneTimeCodeDoc:
        """Atomically replace whatever record exists for the doc's pair.

        Two concurrent upserts for a brand-new pair can both miss the filter;
        the loser hits the unique index and is retried once as a plain replace.
        """
        query = {"email": doc.email, "purpose": doc.purpose.value}
        replacement = doc.to_mongo()
        try:
            raw = await self._col.find_one_and_replace(
                query,
                replacement,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            log.info("otp_upsert_retry", email=doc.email, purpose=doc.purpose.value)
            raw = await self._col.find_one_and_replace(
                query,
                replacement,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return OneTimeCodeDoc.from_mongo(raw)

    async def find_by_pair(
        self, email: str, purpose: OtpPurpose
    ) -> Optional[OneTimeCodeDoc]:
        raw = await self._col.find_one({"email": email, "purpose": purpose.value})
        return OneTimeCodeDoc.from_mongo(raw)

    async def increment_attempts(
        self, otp_id: ObjectId, code_hash: str, max_attempts: int
    ) -> Optional[OneTimeCodeDoc]:
        """Record one failed attempt unless the record is consumed, exhausted
        or has been replaced by a newer code since it was read.

        Returns the updated record, or None when the guard did not match.
        """
        raw = await self._col.find_one_and_update(
            {
                "_id": otp_id,
                "code_hash": code_hash,
                "consumed": False,
                "attempt_count": {"$lt": max_attempts},
            },
            {
                "$inc": {"attempt_count": 1},
                "$set": {"updated_at": to_bson_datetime(utcnow())},
            },
            return_document=ReturnDocument.AFTER,
        )
        return OneTimeCodeDoc.from_mongo(raw)

    async def mark_consumed(
        self, otp_id: ObjectId, code_hash: str, max_attempts: int
    ) -> Optional[OneTimeCodeDoc]:
        """Flip consumed to True once. None if another request got there first."""
        now = to_bson_datetime(utcnow())
        raw = await self._col.find_one_and_update(
            {
                "_id": otp_id,
                "code_hash": code_hash,
                "consumed": False,
                "attempt_count": {"$lt": max_attempts},
            },
            {"$set": {"consumed": True, "consumed_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return OneTimeCodeDoc.from_mongo(raw)

    async def delete_for_pair(self, email: str, purpose: OtpPurpose) -> int:
        result = await self._col.delete_many(
            {"email": email, "purpose": purpose.value}
        )
        return result.deleted_count

    async def delete_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = to_bson_datetime(now or utcnow())
        result = await self._col.delete_many({"expires_at": {"$lte": cutoff}})
        return result.deleted_count

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .models import Checkpoint
from .store import DEFAULT_COLLECTION, DEFAULT_DATABASE_ID, StoreError, require_id

logger = logging.getLogger(__name__)

_REMOTE_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class FirestoreCheckpointStore:
    def __init__(
        self,
        project_id: str | None = None,
        database_id: str = DEFAULT_DATABASE_ID,
        collection: str = DEFAULT_COLLECTION,
        client: Any | None = None,
    ):
        if client is None:
            try:
                client = firestore.AsyncClient(project=project_id, database=database_id)
            except _REMOTE_ERRORS as exc:
                raise StoreError(f"Cannot connect to Firestore: {exc}") from exc
        self._client = client
        self._collection_name = collection

    @property
    def _collection(self):
        return self._client.collection(self._collection_name)

    async def find(self, day: date) -> list[Checkpoint]:
        start_of_day = datetime.combine(day, time()).astimezone()
        next_day = datetime.combine(day + timedelta(days=1), time()).astimezone()
        query = (
            self._collection.where(filter=FieldFilter("time", ">=", start_of_day))
            .where(filter=FieldFilter("time", "<", next_day))
            .order_by("time", direction=firestore.Query.ASCENDING)
        )
        try:
            return [
                Checkpoint.from_document(snapshot.to_dict(), id=snapshot.id)
                async for snapshot in query.stream()
            ]
        except _REMOTE_ERRORS as exc:
            raise StoreError(f"Failed to load checkpoints for {day.isoformat()}: {exc}") from exc

    async def insert(self, checkpoint: Checkpoint) -> Checkpoint:
        try:
            _, reference = await self._collection.add(checkpoint.to_document())
        except _REMOTE_ERRORS as exc:
            raise StoreError(f"Failed to insert checkpoint: {exc}") from exc
        logger.debug("Inserted checkpoint %s at %s", reference.id, checkpoint.time.isoformat())
        return Checkpoint(
            id=reference.id,
            time=checkpoint.time,
            project=checkpoint.project,
            message=checkpoint.message,
            registered=checkpoint.registered,
        )

    async def update(self, checkpoint: Checkpoint) -> None:
        identifier = require_id(checkpoint)
        try:
            await self._collection.document(identifier).update(checkpoint.to_document())
        except _REMOTE_ERRORS as exc:
            raise StoreError(f"Failed to update checkpoint {identifier}: {exc}") from exc

    async def delete(self, checkpoint: Checkpoint) -> None:
        identifier = require_id(checkpoint)
        try:
            await self._collection.document(identifier).delete()
        except _REMOTE_ERRORS as exc:
            raise StoreError(f"Failed to delete checkpoint {identifier}: {exc}") from exc

    async def distinct_dates(self) -> list[date]:
        query = self._collection.order_by("time", direction=firestore.Query.ASCENDING)
        try:
            days = {
                Checkpoint.from_document(snapshot.to_dict(), id=snapshot.id).time.date()
                async for snapshot in query.stream()
            }
        except _REMOTE_ERRORS as exc:
            raise StoreError(f"Failed to list checkpoint dates: {exc}") from exc
        return sorted(days)

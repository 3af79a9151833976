from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from .models import Checkpoint

DEFAULT_DATABASE_ID = "tcheater"
DEFAULT_COLLECTION = "checkpoints"


class StoreError(RuntimeError):
    """A remote read or write failed (network, auth, or store-side rejection)."""


@runtime_checkable
class CheckpointStore(Protocol):
    async def find(self, day: date) -> list[Checkpoint]:
        """Checkpoints whose date is ``day``, ascending by time."""

    async def insert(self, checkpoint: Checkpoint) -> Checkpoint:
        """Persist a new checkpoint and return it with its identifier set."""

    async def update(self, checkpoint: Checkpoint) -> None:
        """Replace time, project, message and registered, keyed by identifier."""

    async def delete(self, checkpoint: Checkpoint) -> None:
        """Remove a checkpoint by identifier."""

    async def distinct_dates(self) -> list[date]:
        """Every date holding at least one checkpoint, ascending."""


def require_id(checkpoint: Checkpoint) -> str:
    if not checkpoint.id:
        raise StoreError("Checkpoint has not been persisted yet (no identifier).")
    return checkpoint.id

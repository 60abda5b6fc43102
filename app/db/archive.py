"""Document-store archive for class statistics snapshots.

The archive is a secondary, best-effort copy of each aggregation run. Stores
report what happened through an ``ArchiveResult`` and never raise into the
caller: the relational summary row is the system of record.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from bson.errors import BSONError
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from app.core.errors import ArchiveWriteError

logger = logging.getLogger(__name__)

STORED = "stored"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class ArchiveResult:
    status: str  # "stored" | "skipped" | "failed"
    document_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != FAILED


def _stamp(document: dict[str, Any]) -> dict[str, Any]:
    # copy so the caller's payload never picks up Mongo's _id
    data = dict(document)
    now = datetime.now(timezone.utc)
    data.setdefault("created_at", now)
    data["updated_at"] = now
    return data


class ArchiveStore:
    """Capability interface: archive one snapshot document."""

    def archive(self, document: dict[str, Any]) -> ArchiveResult:
        try:
            document_id = self._insert(_stamp(document))
        except ArchiveWriteError as exc:
            return ArchiveResult(status=FAILED, error=str(exc))
        except Exception as exc:
            # any store failure is reported, never raised past the summary commit
            logger.exception("Unexpected archive store failure")
            return ArchiveResult(status=FAILED, error=str(exc) or type(exc).__name__)
        return ArchiveResult(status=STORED, document_id=document_id)

    def _insert(self, document: dict[str, Any]) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NullArchiveStore(ArchiveStore):
    """Used when no document store is configured; every write is skipped."""

    def archive(self, document: dict[str, Any]) -> ArchiveResult:
        logger.info("No archive store configured; skipping snapshot for classroom %s", document.get("classroom_id"))
        return ArchiveResult(status=SKIPPED)


class InMemoryArchiveStore(ArchiveStore):
    def __init__(self):
        self.documents: list[dict[str, Any]] = []

    def _insert(self, document: dict[str, Any]) -> str:
        self.documents.append(document)
        return str(len(self.documents))


class MongoArchiveStore(ArchiveStore):
    def __init__(self, uri: str, db_name: str, collection_name: str, timeout_ms: int = 5000, client=None):
        # MongoClient connects lazily, so building it never blocks startup
        self.client = client if client is not None else MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        self.collection = self.client[db_name][collection_name]

    def _insert(self, document: dict[str, Any]) -> str:
        try:
            result = self.collection.insert_one(document)
        except (PyMongoError, BSONError) as exc:
            raise ArchiveWriteError(f"Failed to save to MongoDB: {exc}") from exc
        logger.info("Statistics saved to MongoDB (%s)", result.inserted_id)
        return str(result.inserted_id)

    def close(self) -> None:
        self.client.close()


def build_archive_store(settings) -> ArchiveStore:
    if not settings.MONGODB_URI:
        return NullArchiveStore()
    return MongoArchiveStore(
        settings.MONGODB_URI,
        settings.MONGODB_DB_NAME,
        settings.MONGODB_COLLECTION,
        timeout_ms=settings.MONGODB_TIMEOUT_MS,
    )

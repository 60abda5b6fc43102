from functools import lru_cache

from app.core.config import settings
from app.db.archive import ArchiveStore, build_archive_store
from app.db.session import SessionLocal


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# one archive store per process, picked from config on first use
@lru_cache
def get_archive_store() -> ArchiveStore:
    return build_archive_store(settings)

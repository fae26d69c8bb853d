"""Document store engine setup and process-wide store registry."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column, Integer, String, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from core.settings import Settings, get_settings

if TYPE_CHECKING:
    from repositories.document_repo import DocumentStore

logger = logging.getLogger(__name__)

Base = declarative_base()

SQLITE_BUSY_TIMEOUT_SECONDS = 30


class DocumentModel(Base):
    """Title-keyed document row; metadata is stored as JSON and never validated."""
    __tablename__ = "documents"

    title = Column(String, primary_key=True)
    revision = Column(Integer, nullable=False, default=0)
    doc_metadata = Column("metadata", JSON, nullable=False, default=dict)  # "metadata" is reserved on declarative classes

    def __repr__(self):
        return f"<DocumentModel(title={self.title!r}, revision={self.revision})>"


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute("PRAGMA synchronous = FULL")
    cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_SECONDS * 1000}")
    cursor.close()


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine; SQLite files get WAL mode and a busy timeout.

    Args:
        database_url: SQLAlchemy async URL (e.g. sqlite+aiosqlite:///./data/tiddlers.db)
    """
    url = make_url(database_url)
    connect_args: dict = {}
    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(database_url, echo=False, connect_args=connect_args)
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _apply_sqlite_pragmas)
    return engine


def build_document_store(settings: Settings) -> "DocumentStore":
    if settings.db_type == "mongodb":
        from pymongo import AsyncMongoClient

        from repositories.mongo_document_repo import MongoDocumentStore

        if not settings.mongo_url or not settings.db_name:
            raise RuntimeError("MONGO_URL and DB_NAME are required when DB_TYPE=mongodb")
        client = AsyncMongoClient(settings.mongo_url, serverSelectionTimeoutMS=2000)
        return MongoDocumentStore(client[settings.db_name].documents, client=client)

    from repositories.sql_document_repo import SqlDocumentStore

    return SqlDocumentStore(create_engine_for_url(settings.database_url))


class DocumentStoreManager:
    _instance: "DocumentStoreManager | None" = None
    _lock = Lock()

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store

    @classmethod
    def configure(cls, store: "DocumentStore") -> "DocumentStoreManager":
        with cls._lock:
            cls._instance = cls(store)
            return cls._instance

    @classmethod
    def configure_from_settings(cls) -> "DocumentStoreManager":
        settings = get_settings()
        logger.info("Using %s document store", settings.db_type)
        return cls.configure(build_document_store(settings))

    @classmethod
    def get_instance(cls) -> "DocumentStoreManager":
        if cls._instance is None:
            return cls.configure_from_settings()
        return cls._instance

    @property
    def store(self) -> "DocumentStore":
        return self._store

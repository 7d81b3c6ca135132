# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from uuid import uuid4

from models import Document, DocumentStatus, utc_now_iso
from models.converters import document_from_row

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def make_engine(db_url: str) -> Engine:
    # Create data dir if sqlite file
    if db_url.startswith("sqlite:///"):
        file_path = db_url.replace("sqlite:///", "", 1)
        _ensure_dir(file_path)

    engine = create_engine(db_url, future=True, pool_pre_ping=True)

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("id", String, primary_key=True),
    Column("original_name", Text, nullable=False, default=""),
    Column("file_path", Text, nullable=False, unique=True),
    Column("signed_file_path", Text, nullable=False, default=""),
    Column("uploaded_by", String, nullable=False),
    Column("status", String, nullable=False, default=DocumentStatus.PENDING.value),
    Column("signed", Integer, nullable=False, default=0),  # 0/1, mirrors status
    Column("signatures", JSON, nullable=False, default=list),
    Column("size", Integer, nullable=False, default=0),
    Column("mime_type", String, nullable=False, default="application/pdf"),
    # ISO-8601 UTC strings; lexical order == time order
    Column("created_at", String, nullable=False),
    Column("updated_at", String, nullable=False),
)

Index("idx_documents_owner_created", documents.c.uploaded_by, documents.c.created_at)
Index("idx_documents_signed_path", documents.c.signed_file_path)

_COLUMNS = {c.name for c in documents.columns}
_IMMUTABLE = {"id", "uploaded_by", "created_at"}

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/docsign.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    def _row(self, conn, where) -> Optional[Document]:
        row = conn.execute(select(documents).where(where)).mappings().first()
        return document_from_row(dict(row)) if row else None

    def create_document(
        self,
        *,
        original_name: str,
        file_path: str,
        uploaded_by: str,
        size: int = 0,
        mime_type: str = "application/pdf",
    ) -> Document:
        now = utc_now_iso()
        doc = Document(
            id=uuid4().hex,
            original_name=original_name,
            file_path=file_path,
            uploaded_by=uploaded_by,
            size=size,
            mime_type=mime_type,
            created_at=now,
            updated_at=now,
        )
        values = doc.to_storage()
        values["signed"] = int(doc.signed)
        with self.engine.begin() as conn:
            conn.execute(insert(documents).values(**values))
        return doc

    def get_document(self, doc_id: str) -> Optional[Document]:
        with self.engine.connect() as conn:
            return self._row(conn, documents.c.id == doc_id)

    def get_document_by_signed_path(self, signed_file_path: str) -> Optional[Document]:
        if not signed_file_path:
            return None
        with self.engine.connect() as conn:
            return self._row(conn, documents.c.signed_file_path == signed_file_path)

    def list_documents(self, uploaded_by: str) -> List[Document]:
        stmt = (
            select(documents)
            .where(documents.c.uploaded_by == uploaded_by)
            .order_by(documents.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [document_from_row(dict(r)) for r in rows]

    def update_document(self, doc_id: str, updates: Dict[str, Any]) -> Optional[Document]:
        values: Dict[str, Any] = {}
        for key, value in updates.items():
            if key in _IMMUTABLE or key not in _COLUMNS:
                continue
            values[key] = value.value if isinstance(value, DocumentStatus) else value

        # `signed` always follows status, never the caller
        if "status" in values:
            values["signed"] = int(values["status"] == DocumentStatus.COMPLETED.value)
        else:
            values.pop("signed", None)
        values["updated_at"] = utc_now_iso()

        with self.engine.begin() as conn:
            res = conn.execute(
                update(documents).where(documents.c.id == doc_id).values(**values)
            )
            if res.rowcount == 0:
                return None
            return self._row(conn, documents.c.id == doc_id)

    def delete_document(self, doc_id: str) -> bool:
        with self.engine.begin() as conn:
            res = conn.execute(delete(documents).where(documents.c.id == doc_id))
        return res.rowcount > 0

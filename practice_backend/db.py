"""
Practice store abstraction: SQLAlchemy, hosted REST and in-memory implementations.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol

import requests
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from practice_backend.errors import StoreError, StoreNotConfiguredError, ValidationError

logger = logging.getLogger(__name__)

TABLE_NAME = "daily_practice"

UPSERT_FIELDS = (
    "writing_submitted",
    "writing_char_count",
    "writing_word_count",
    "speech_detected",
    "notes",
)


class PracticeStore(Protocol):
    """Interface for persisted per-day practice data."""

    def get_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list["PracticeRecord"]:
        ...

    def upsert(self, record_date: date, fields: Mapping[str, Any]) -> "PracticeRecord":
        ...

    def delete(self, record_date: date) -> None:
        ...


@dataclass
class PracticeRecord:
    date: date
    writing_submitted: bool = False
    writing_char_count: int = 0
    writing_word_count: int = 0
    speech_detected: bool = False
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "writing_submitted": self.writing_submitted,
            "writing_char_count": self.writing_char_count,
            "writing_word_count": self.writing_word_count,
            "speech_detected": self.speech_detected,
            "notes": self.notes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def fields(self) -> dict:
        """Stored values without the key and the server-side timestamp."""
        return {name: getattr(self, name) for name in UPSERT_FIELDS}


def build_record(record_date: date, fields: Mapping[str, Any]) -> PracticeRecord:
    """
    Build the full row an upsert writes.

    Fields missing from ``fields`` take their defaults, unknown keys are
    ignored and ``updated_at`` is always stamped with the current UTC time.
    """
    char_count = int(fields.get("writing_char_count") or 0)
    word_count = int(fields.get("writing_word_count") or 0)
    if char_count < 0 or word_count < 0:
        raise ValidationError("writing counts must not be negative")
    return PracticeRecord(
        date=record_date,
        writing_submitted=bool(fields.get("writing_submitted", False)),
        writing_char_count=char_count,
        writing_word_count=word_count,
        speech_detected=bool(fields.get("speech_detected", False)),
        notes=fields.get("notes") or None,
        updated_at=datetime.now(timezone.utc),
    )


def _in_range(
    record_date: date, start_date: Optional[date], end_date: Optional[date]
) -> bool:
    if start_date and record_date < start_date:
        return False
    if end_date and record_date > end_date:
        return False
    return True


@dataclass
class InMemoryPracticeStore:
    """Simple in-memory store for development and tests."""

    records: Dict[date, PracticeRecord] = field(default_factory=dict)

    def get_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[PracticeRecord]:
        matching = [
            record
            for record_date, record in self.records.items()
            if _in_range(record_date, start_date, end_date)
        ]
        return sorted(matching, key=lambda record: record.date, reverse=True)

    def upsert(self, record_date: date, fields: Mapping[str, Any]) -> PracticeRecord:
        record = build_record(record_date, fields)
        self.records[record_date] = record
        return record

    def delete(self, record_date: date) -> None:
        self.records.pop(record_date, None)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.records.clear()


class UnconfiguredPracticeStore:
    """Placeholder used when no store credentials are configured."""

    def get_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[PracticeRecord]:
        raise StoreNotConfiguredError()

    def upsert(self, record_date: date, fields: Mapping[str, Any]) -> PracticeRecord:
        raise StoreNotConfiguredError()

    def delete(self, record_date: date) -> None:
        raise StoreNotConfiguredError()


def normalize_database_url(url: str) -> str:
    """Point bare Postgres URLs at the psycopg (v3) driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


class SqlPracticeStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlPracticeStore")
        self.engine = create_engine(
            normalize_database_url(database_url),
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def _ensure_schema(self) -> None:
        # Construction does no I/O; the table is created on the first query.
        if self._schema_ready:
            return
        with self._schema_lock:
            if not self._schema_ready:
                Base.metadata.create_all(self.engine)
                self._schema_ready = True

    def _to_record(self, row: "PracticeRow") -> PracticeRecord:
        return PracticeRecord(
            date=row.date,
            writing_submitted=row.writing_submitted,
            writing_char_count=row.writing_char_count,
            writing_word_count=row.writing_word_count,
            speech_detected=row.speech_detected,
            notes=row.notes,
            updated_at=row.updated_at,
        )

    def get_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[PracticeRecord]:
        stmt = select(PracticeRow).order_by(PracticeRow.date.desc())
        if start_date:
            stmt = stmt.where(PracticeRow.date >= start_date)
        if end_date:
            stmt = stmt.where(PracticeRow.date <= end_date)
        try:
            self._ensure_schema()
            with self.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [self._to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.exception("Practice store query failed")
            raise StoreError(f"Store query failed: {exc}") from exc

    def upsert(self, record_date: date, fields: Mapping[str, Any]) -> PracticeRecord:
        record = build_record(record_date, fields)
        try:
            self._ensure_schema()
            with self.Session() as session:
                session.merge(
                    PracticeRow(
                        date=record.date,
                        writing_submitted=record.writing_submitted,
                        writing_char_count=record.writing_char_count,
                        writing_word_count=record.writing_word_count,
                        speech_detected=record.speech_detected,
                        notes=record.notes,
                        updated_at=record.updated_at,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Practice store upsert failed for %s", record_date)
            raise StoreError(f"Store upsert failed: {exc}") from exc
        return record

    def delete(self, record_date: date) -> None:
        try:
            self._ensure_schema()
            with self.Session() as session:
                row = session.get(PracticeRow, record_date)
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Practice store delete failed for %s", record_date)
            raise StoreError(f"Store delete failed: {exc}") from exc


class SupabasePracticeStore:
    """
    Store backed by a hosted Postgres REST endpoint (PostgREST dialect).

    Reads page through the table with ``Range`` headers so that wide date
    ranges are returned in full rather than cut at the server's row limit.
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        page_size: int = 1000,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required")
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{TABLE_NAME}"
        self.page_size = page_size
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        *,
        params: list[tuple[str, str]] | None = None,
        headers: dict | None = None,
        json_body: Any = None,
    ) -> list[dict]:
        try:
            response = self.session.request(
                method,
                self.endpoint,
                params=params,
                headers=headers,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.exception("Practice store %s request failed", method)
            raise StoreError(f"Store request failed: {exc}") from exc

        # Requested range starts past the last row.
        if response.status_code == 416:
            return []
        if not response.ok:
            raise StoreError(_error_message(response))
        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError("Store returned malformed JSON") from exc

    def get_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[PracticeRecord]:
        params = [("select", "*"), ("order", "date.desc")]
        if start_date:
            params.append(("date", f"gte.{start_date.isoformat()}"))
        if end_date:
            params.append(("date", f"lte.{end_date.isoformat()}"))

        records: list[PracticeRecord] = []
        offset = 0
        while True:
            headers = {
                "Range-Unit": "items",
                "Range": f"{offset}-{offset + self.page_size - 1}",
            }
            rows = self._request("GET", params=params, headers=headers)
            records.extend(_rows_to_records(rows))
            if len(rows) < self.page_size:
                return records
            offset += self.page_size

    def upsert(self, record_date: date, fields: Mapping[str, Any]) -> PracticeRecord:
        record = build_record(record_date, fields)
        rows = self._request(
            "POST",
            params=[("on_conflict", "date")],
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            json_body=[record.as_dict()],
        )
        return _rows_to_records(rows[:1])[0] if rows else record

    def delete(self, record_date: date) -> None:
        self._request("DELETE", params=[("date", f"eq.{record_date.isoformat()}")])


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"Store request failed with status {response.status_code}"


def _row_to_record(row: dict) -> PracticeRecord:
    updated_at = row.get("updated_at")
    return PracticeRecord(
        date=date.fromisoformat(row["date"]),
        writing_submitted=bool(row.get("writing_submitted")),
        writing_char_count=int(row.get("writing_char_count") or 0),
        writing_word_count=int(row.get("writing_word_count") or 0),
        speech_detected=bool(row.get("speech_detected")),
        notes=row.get("notes"),
        updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
    )



def _rows_to_records(rows: list[dict]) -> list[PracticeRecord]:
    try:
        return [_row_to_record(row) for row in rows]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.error("Practice store returned a malformed row: %s", exc)
        raise StoreError(f"Store returned a malformed row: {exc}") from exc

Base = declarative_base()


class PracticeRow(Base):
    __tablename__ = TABLE_NAME

    date = Column(Date, primary_key=True)
    writing_submitted = Column(Boolean, nullable=False, default=False)
    writing_char_count = Column(Integer, nullable=False, default=0)
    writing_word_count = Column(Integer, nullable=False, default=0)
    speech_detected = Column(Boolean, nullable=False, default=False)
    notes = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

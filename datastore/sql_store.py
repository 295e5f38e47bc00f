"""Durable reading store backed by SQLAlchemy."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    create_engine,
    delete,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from errors import BackendOperationError, BackendUnavailable
from models.records import Reading, StoredReading


class Base(DeclarativeBase):
    pass


class ReadingRow(Base):
    __tablename__ = "readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    air_humidity: Mapped[float] = mapped_column(Float, nullable=False)
    soil_humidity: Mapped[int] = mapped_column(Integer, nullable=False)
    light_level: Mapped[int] = mapped_column(Integer, nullable=False)
    pump_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_readings_captured_at", "captured_at"),)

    def to_stored(self) -> StoredReading:
        captured_at = self.captured_at
        # SQLite drops tzinfo; values are always written in UTC.
        if captured_at.tzinfo is None:
            captured_at = captured_at.replace(tzinfo=timezone.utc)
        return StoredReading(
            sequence_id=self.id,
            temperature=self.temperature,
            air_humidity=self.air_humidity,
            soil_humidity=self.soil_humidity,
            light_level=self.light_level,
            pump_active=self.pump_active,
            captured_at=captured_at,
        )


def _connect_args(url: str, timeout: float) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"timeout": timeout, "check_same_thread": False}
    if url.startswith(("postgresql", "mysql")):
        return {"connect_timeout": int(max(timeout, 1))}
    return {}


class SqlReadingStore:
    """Reading store persisted through a SQLAlchemy engine."""

    def __init__(self, url: str, connect_timeout: float = 5.0, engine: Optional[Engine] = None) -> None:
        self.url = url
        self._engine = engine or create_engine(
            url,
            pool_pre_ping=True,
            connect_args=_connect_args(url, connect_timeout),
        )
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)

    @classmethod
    def connect(cls, url: str, connect_timeout: float = 5.0) -> "SqlReadingStore":
        """Build a store for ``url`` and verify it is reachable."""

        try:
            store = cls(url, connect_timeout=connect_timeout)
        except (SQLAlchemyError, ImportError) as exc:
            # Malformed URLs and missing DB drivers surface here, before any connection.
            raise BackendUnavailable(f"Cannot create engine for durable store: {exc}") from exc
        try:
            store.ping()
        except BackendUnavailable:
            store.close()
            raise
        return store

    def ping(self) -> None:
        """Open a connection and make sure the schema exists.

        Raises BackendUnavailable when the database cannot be reached.
        """

        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise BackendUnavailable(f"Durable store at {self._safe_url()} is unreachable: {exc}") from exc

    def insert(self, reading: Reading, captured_at: datetime) -> StoredReading:
        row = ReadingRow(
            temperature=reading.temperature,
            air_humidity=reading.air_humidity,
            soil_humidity=reading.soil_humidity,
            light_level=reading.light_level,
            pump_active=reading.pump_active,
            captured_at=captured_at.astimezone(timezone.utc),
        )
        try:
            with self._sessions.begin() as session:
                session.add(row)
                session.flush()
                return row.to_stored()
        except (SQLAlchemyError, OverflowError) as exc:
            raise BackendOperationError(f"Failed to store reading: {exc}") from exc

    def list_recent(self, limit: int) -> list[StoredReading]:
        if limit <= 0:
            return []
        statement = (
            select(ReadingRow)
            .order_by(ReadingRow.captured_at.desc(), ReadingRow.id.desc())
            .limit(limit)
        )
        try:
            with self._session() as session:
                return [row.to_stored() for row in session.scalars(statement)]
        except SQLAlchemyError as exc:
            raise BackendOperationError(f"Failed to list readings: {exc}") from exc

    def latest(self) -> Optional[StoredReading]:
        recent = self.list_recent(1)
        return recent[0] if recent else None

    def oldest(self) -> Optional[StoredReading]:
        statement = (
            select(ReadingRow).order_by(ReadingRow.captured_at.asc(), ReadingRow.id.asc()).limit(1)
        )
        try:
            with self._session() as session:
                row = session.scalars(statement).first()
                return row.to_stored() if row is not None else None
        except SQLAlchemyError as exc:
            raise BackendOperationError(f"Failed to read oldest reading: {exc}") from exc

    def count(self) -> int:
        try:
            with self._session() as session:
                return int(session.scalar(select(func.count()).select_from(ReadingRow)) or 0)
        except SQLAlchemyError as exc:
            raise BackendOperationError(f"Failed to count readings: {exc}") from exc

    def wipe_all(self) -> int:
        try:
            with self._sessions.begin() as session:
                result = session.execute(delete(ReadingRow))
                return int(result.rowcount or 0)
        except SQLAlchemyError as exc:
            raise BackendOperationError(f"Failed to wipe readings: {exc}") from exc

    def close(self) -> None:
        self._engine.dispose()

    def _session(self) -> Session:
        return self._sessions()

    def _safe_url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

"""
SQLAlchemy storage backend for the sentiment time series.

Keeps readings, aggregate snapshots and alerts in three tables of any database
SQLAlchemy can reach (SQLite by default). Tables are created on startup.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, List, Optional, Type

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sentiment_aggregator.exceptions import StoreError
from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, Reading, utc_now
from sentiment_aggregator.models.orm import AggregateORM, AlertORM, Base, ReadingORM
from sentiment_aggregator.storage.memory_store import (
    DEFAULT_MAX_AGGREGATES,
    DEFAULT_MAX_ALERTS,
    DEFAULT_MAX_READINGS,
)

logger = logging.getLogger(__name__)


def _to_db_time(value: datetime) -> datetime:
    """Convert a datetime to naive UTC for storage."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyStore:
    """Time-series store for storing readings, snapshots and alerts using SQLAlchemy ORM."""

    def __init__(
        self,
        database_url: str,
        max_readings: int = DEFAULT_MAX_READINGS,
        max_aggregates: int = DEFAULT_MAX_AGGREGATES,
        max_alerts: int = DEFAULT_MAX_ALERTS,
        echo: bool = False,
    ):
        """
        Initialize the store and create missing tables.

        Args:
            database_url: SQLAlchemy database URL
            max_readings: Number of readings retained
            max_aggregates: Number of aggregate snapshots retained
            max_alerts: Number of alerts retained
            echo: Log every SQL statement

        Raises:
            StoreError: If the database cannot be reached or the schema cannot be created
        """
        self.bounds = {
            ReadingORM: max_readings,
            AggregateORM: max_aggregates,
            AlertORM: max_alerts,
        }
        for model, bound in self.bounds.items():
            if bound < 1:
                raise ValueError(f"Bound for {model.__tablename__} must be at least 1, got {bound}")

        engine_kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database.
                engine_kwargs["poolclass"] = StaticPool

        self._lock = threading.RLock()
        self._batch_session: Optional[Session] = None
        try:
            self.engine = create_engine(database_url, **engine_kwargs)
            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database store: {e}")
            raise StoreError(f"Cannot initialize database store: {e}") from e

        logger.info(f"Initialized SQLAlchemy store at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """
        Yield a session, committing on success.

        Inside `batch()` the batch's session is reused and committed by the batch.
        """
        with self._lock:
            if self._batch_session is not None:
                yield self._batch_session
                return

            session = self.SessionLocal()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database store operation failed: {e}")
                raise StoreError(f"Database store operation failed: {e}") from e
            finally:
                session.close()

    @contextmanager
    def batch(self) -> Iterator[None]:
        with self._lock:
            if self._batch_session is not None:
                yield
                return

            session = self.SessionLocal()
            self._batch_session = session
            try:
                yield
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database store batch failed: {e}")
                raise StoreError(f"Database store batch failed: {e}") from e
            except BaseException:
                session.rollback()
                raise
            finally:
                self._batch_session = None
                session.close()

    def _truncate(self, session: Session, model: Type[Base]) -> None:
        """Delete every row older than the newest `bound` rows of a table."""
        bound = self.bounds[model]
        oldest_kept = session.execute(
            select(model.id).order_by(model.id.desc()).offset(bound - 1).limit(1)
        ).scalar_one_or_none()
        if oldest_kept is not None:
            session.execute(delete(model).where(model.id < oldest_kept))

    @staticmethod
    def _reading_from_orm(row: ReadingORM) -> Reading:
        reading = Reading.model_validate(row)
        return reading.model_copy(update={"timestamp": _from_db_time(row.timestamp)})

    @staticmethod
    def _aggregate_from_orm(row: AggregateORM) -> AggregateSnapshot:
        snapshot = AggregateSnapshot.model_validate(row)
        return snapshot.model_copy(update={"timestamp": _from_db_time(row.timestamp)})

    @staticmethod
    def _alert_from_orm(row: AlertORM) -> Alert:
        alert = Alert.model_validate(row)
        return alert.model_copy(update={"timestamp": _from_db_time(row.timestamp)})

    def append_reading(self, reading: Reading) -> Reading:
        data = reading.model_dump(exclude={"id"})
        data["timestamp"] = _to_db_time(reading.timestamp)
        with self._session() as session:
            row = ReadingORM(**data)
            session.add(row)
            session.flush()
            self._truncate(session, ReadingORM)
            return self._reading_from_orm(row)

    def append_aggregate(self, snapshot: AggregateSnapshot) -> AggregateSnapshot:
        with self._session() as session:
            row = AggregateORM(
                timestamp=_to_db_time(snapshot.timestamp),
                bullish_pct=snapshot.bullish_pct,
                bearish_pct=snapshot.bearish_pct,
                neutral_pct=snapshot.neutral_pct,
                total_posts=snapshot.total_posts,
                extreme_signal=snapshot.extreme_signal.value if snapshot.extreme_signal else None,
            )
            session.add(row)
            session.flush()
            self._truncate(session, AggregateORM)
            return self._aggregate_from_orm(row)

    def append_alert(self, alert: Alert) -> Alert:
        with self._session() as session:
            row = AlertORM(
                timestamp=_to_db_time(alert.timestamp),
                alert_type=alert.alert_type.value,
                sentiment_pct=alert.sentiment_pct,
                message=alert.message,
                acknowledged=False,
            )
            session.add(row)
            session.flush()
            self._truncate(session, AlertORM)
            return self._alert_from_orm(row)

    def latest_aggregate(self) -> Optional[AggregateSnapshot]:
        with self._session() as session:
            row = session.execute(
                select(AggregateORM).order_by(AggregateORM.id.desc()).limit(1)
            ).scalar_one_or_none()
            return self._aggregate_from_orm(row) if row is not None else None

    def aggregates_since(self, duration: timedelta, now: Optional[datetime] = None) -> List[AggregateSnapshot]:
        cutoff = _to_db_time((now or utc_now()) - duration)
        with self._session() as session:
            rows = session.execute(
                select(AggregateORM).where(AggregateORM.timestamp > cutoff).order_by(AggregateORM.id)
            ).scalars().all()
            return [self._aggregate_from_orm(row) for row in rows]

    def active_alerts(self) -> List[Alert]:
        with self._session() as session:
            rows = session.execute(
                select(AlertORM).where(AlertORM.acknowledged.is_(False)).order_by(AlertORM.id)
            ).scalars().all()
            return [self._alert_from_orm(row) for row in rows]

    def acknowledge_alert(self, alert_id: int) -> bool:
        with self._session() as session:
            row = session.get(AlertORM, alert_id)
            if row is None:
                logger.debug(f"Acknowledge ignored, no alert with id {alert_id}")
                return False
            if not row.acknowledged:
                row.acknowledged = True
                logger.info(f"Acknowledged alert {alert_id}")
            return True

    def recent_readings(self, limit: Optional[int] = None) -> List[Reading]:
        if limit is not None and limit <= 0:
            return []
        with self._session() as session:
            query = select(ReadingORM).order_by(ReadingORM.id.desc())
            if limit is not None:
                query = query.limit(limit)
            rows = session.execute(query).scalars().all()
            return [self._reading_from_orm(row) for row in reversed(rows)]

    def counts(self) -> Dict[str, int]:
        with self._session() as session:
            return {
                "readings": session.execute(select(func.count()).select_from(ReadingORM)).scalar_one(),
                "aggregates": session.execute(select(func.count()).select_from(AggregateORM)).scalar_one(),
                "alerts": session.execute(select(func.count()).select_from(AlertORM)).scalar_one(),
            }

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()

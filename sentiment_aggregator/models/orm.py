"""
SQLAlchemy ORM models for the 'readings', 'aggregates' and 'alerts' tables.

Used only by the SQLAlchemy store backend. Timestamps are stored as naive UTC
so that SQLite and server databases compare them the same way.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ReadingORM(Base):
    """One source's tally for one cycle."""
    __tablename__ = "readings"
    # Ids are never reused after FIFO eviction.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    ticker: Mapped[str] = mapped_column(String(32), nullable=False)
    bullish: Mapped[int] = mapped_column(Integer, nullable=False)
    bearish: Mapped[int] = mapped_column(Integer, nullable=False)
    neutral: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    bullish_pct: Mapped[float] = mapped_column(Float, nullable=False)
    bearish_pct: Mapped[float] = mapped_column(Float, nullable=False)
    neutral_pct: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<ReadingORM(id={self.id}, source='{self.source}', ticker='{self.ticker}', total={self.total})>"


class AggregateORM(Base):
    """The combined snapshot of one cycle."""
    __tablename__ = "aggregates"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    bullish_pct: Mapped[float] = mapped_column(Float, nullable=False)
    bearish_pct: Mapped[float] = mapped_column(Float, nullable=False)
    neutral_pct: Mapped[float] = mapped_column(Float, nullable=False)
    total_posts: Mapped[int] = mapped_column(Integer, nullable=False)
    extreme_signal: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<AggregateORM(id={self.id}, bullish_pct={self.bullish_pct:.1f}, signal={self.extreme_signal})>"


class AlertORM(Base):
    """An extreme-sentiment alert."""
    __tablename__ = "alerts"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    alert_type: Mapped[str] = mapped_column(String(32), nullable=False)
    sentiment_pct: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    def __repr__(self) -> str:
        return f"<AlertORM(id={self.id}, alert_type='{self.alert_type}', acknowledged={self.acknowledged})>"

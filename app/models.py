"""
SQLAlchemy ORM Models for the EPG snapshot

The snapshot database holds exactly one serialized CacheIndex.
"""
from datetime import datetime, timezone
from sqlalchemy import Integer, String, DateTime, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class SnapshotMeta(Base):
    """Single-row table marking a complete snapshot"""
    __tablename__ = "snapshot_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    channel_count: Mapped[int] = mapped_column(Integer, nullable=False)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"<SnapshotMeta(channels={self.channel_count}, items={self.item_count})>"


class ChannelName(Base):
    """Name index entry: display name -> channel id"""
    __tablename__ = "channel_names"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    channel_id: Mapped[str] = mapped_column(String, nullable=False)

    def __repr__(self) -> str:
        return f"<ChannelName(name={self.name}, channel_id={self.channel_id})>"


class ProgramItemRow(Base):
    """Programme index entry; row id preserves feed order"""
    __tablename__ = "program_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[str] = mapped_column(String, nullable=False)
    start: Mapped[str] = mapped_column(String, nullable=False)
    end: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("idx_program_items_channel_date", "channel_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<ProgramItemRow(channel={self.channel_id}, date={self.date}, title={self.title})>"

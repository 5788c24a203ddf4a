from __future__ import annotations

# stdlib
import logging
from datetime import datetime
# typing
from typing import Optional, List, Generator

# third-party
from fastapi import FastAPI
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from tribes_api.config import DATABASE_ECHO, DATABASE_URL

logger = logging.getLogger(__name__)


# -------- Engine & sessions --------
def build_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        # sessions are opened and used on different threadpool workers
        connect_args = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=echo, future=True, connect_args=connect_args, **kwargs)


engine = build_engine(DATABASE_URL, echo=DATABASE_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


# ==========================
# SQLAlchemy models
# ==========================
class Tribe(Base):
    __tablename__ = "tribes"

    uuid: Mapped[str] = mapped_column(String, primary_key=True)
    owner_pub_key: Mapped[str] = mapped_column(String(120), index=True, default="")
    owner_alias: Mapped[str] = mapped_column(String(200), default="")
    group_key: Mapped[str] = mapped_column(String, default="")
    name: Mapped[str] = mapped_column(String(200), default="")
    unique_name: Mapped[str] = mapped_column(String(200), index=True, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    tags: Mapped[list] = mapped_column(JSON, default=list)
    img: Mapped[str] = mapped_column(String(500), default="")

    price_to_join: Mapped[int] = mapped_column(BigInteger, default=0)
    price_per_message: Mapped[int] = mapped_column(BigInteger, default=0)
    escrow_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    escrow_millis: Mapped[int] = mapped_column(BigInteger, default=0)

    app_url: Mapped[str] = mapped_column(String(500), index=True, default="")
    feed_url: Mapped[str] = mapped_column(String(500), default="")
    feed_type: Mapped[int] = mapped_column(Integer, default=0)
    member_count: Mapped[int] = mapped_column(BigInteger, default=0)
    last_active: Mapped[int] = mapped_column(BigInteger, default=0)  # unix seconds
    private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bots: Mapped[str] = mapped_column(Text, default="")

    # soft lifecycle flags, independently toggleable
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unlisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    preview: Mapped[str] = mapped_column(String(500), default="")

    created: Mapped[Optional[datetime]] = mapped_column(DateTime, default=datetime.utcnow)
    updated: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    channels: Mapped[List["Channel"]] = relationship("Channel", back_populates="tribe")


class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tribe_uuid: Mapped[str] = mapped_column(ForeignKey("tribes.uuid"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    created: Mapped[Optional[datetime]] = mapped_column(DateTime, default=datetime.utcnow)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    tribe: Mapped["Tribe"] = relationship("Tribe", back_populates="channels")


class Feature(Base):
    __tablename__ = "features"

    uuid: Mapped[str] = mapped_column(String(64), primary_key=True)
    workspace_uuid: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(300), default="")
    brief: Mapped[str] = mapped_column(Text, default="")
    requirements: Mapped[str] = mapped_column(Text, default="")
    architecture: Mapped[str] = mapped_column(Text, default="")
    url: Mapped[str] = mapped_column(String(500), default="")
    priority: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[str] = mapped_column(String(120), default="")
    updated_by: Mapped[str] = mapped_column(String(120), default="")
    created: Mapped[Optional[datetime]] = mapped_column(DateTime, default=datetime.utcnow)
    updated: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


# Dependency: DB session per request
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Create tables on startup
def register_events(app: FastAPI) -> None:
    @app.on_event("startup")
    def on_startup() -> None:
        Base.metadata.create_all(engine)
        logger.info("database ready at %s", engine.url.render_as_string(hide_password=True))

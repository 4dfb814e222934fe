# --- models section of the catalog backend ---

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import (
    JSON, String, Text, Integer, Numeric, DateTime, Boolean,
    func, Index, CheckConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import text
from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging, os, uuid

# Load environment variables early (before reading DATABASE_URL)
from dotenv import load_dotenv
load_dotenv()

# -------------------------------------------------------------------
# Engine / Session
# -------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "")

if DATABASE_URL:
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
    # asyncpg uses 'ssl' in connect_args, not the 'sslmode' query parameter
    ssl_required = "sslmode=require" in DATABASE_URL or "sslmode=verify-full" in DATABASE_URL
    for param in ("sslmode=require", "sslmode=verify-full"):
        DATABASE_URL = DATABASE_URL.replace(f"?{param}", "").replace(f"&{param}", "")

    connect_args = {
        "server_settings": {
            "application_name": "kids_catalog",
        },
        "command_timeout": 60,
        "timeout": 30,
    }
    if ssl_required:
        connect_args["ssl"] = "require"

    engine = create_async_engine(
        DATABASE_URL,
        echo=os.getenv("NODE_ENV") == "development",
        pool_size=20,  # one bulk-import batch fans out to many concurrent inserts
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_timeout=20,
        connect_args=connect_args,
    )
else:
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_NAME = os.getenv("DB_NAME", "catalog")
    SOCKET = os.getenv("INSTANCE_UNIX_SOCKET")
    if SOCKET:
        DATABASE_URL = f"postgresql+asyncpg://{DB_USER}:@/{DB_NAME}?host={SOCKET}"
        engine = create_async_engine(
            DATABASE_URL,
            echo=os.getenv("NODE_ENV") == "development",
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=1800,
            pool_timeout=15,
        )
    else:
        # File-backed so concurrent sessions in one import batch share the same data
        DATABASE_URL = "sqlite+aiosqlite:///./catalog.db"
        engine = create_async_engine(
            DATABASE_URL,
            echo=False,
            connect_args={"timeout": 30},  # seconds a writer waits on the SQLite file lock
        )

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

def _redact_db_url(url: str) -> str:
    try:
        if "@" in url and "://" in url:
            head, tail = url.split("://", 1)
            creds, hostpart = tail.split("@", 1)
            if ":" in creds:
                user, _pwd = creds.split(":", 1)
                return f"{head}://{user}:******@{hostpart}"
            return url
        if url.startswith("sqlite"):
            return url
    except Exception:
        pass
    return "******"

logger = logging.getLogger(__name__)
logger.info(f"Creating SQL engine for { _redact_db_url(DATABASE_URL) }")

async def probe_db_connection(target: Optional[AsyncEngine] = None) -> bool:
    try:
        async with (target or engine).begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("DB connectivity probe: OK")
        return True
    except Exception as e:
        logger.exception(f"DB connectivity probe failed: {e}")
        return False

# -------------------------------------------------------------------
# Base
# -------------------------------------------------------------------
class Base(DeclarativeBase):
    pass

# JSONB on Postgres, plain JSON elsewhere (SQLite in local runs and tests)
JSONType = JSON().with_variant(JSONB, "postgresql")

# -------------------------------------------------------------------
# MODELS
# -------------------------------------------------------------------

class ConfigCarousel(Base):
    __tablename__ = "config_carousel"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # [{"image": ..., "title": ..., "description": ...}, ...] at most 7 entries
    slides: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)


class KidsGiftBox(Base):
    __tablename__ = "kids_gift_boxes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Human-readable identifier (MDK-GB-25J4X2, MDK-GB-25J-0001, ...); unique constraint
    # backs the retry-on-conflict path of the sequential scheme
    display_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price_in_inr: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    image: Mapped[str] = mapped_column(Text, nullable=False)
    badge: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)
    reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_wishlisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_sold_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    category: Mapped[str] = mapped_column(String(2), nullable=False, default="GB")
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("price_in_inr > 0", name="ck_kids_gift_boxes_price_positive"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_kids_gift_boxes_rating_range"),
        CheckConstraint("reviews >= 0", name="ck_kids_gift_boxes_reviews_non_negative"),
    )

# -------------------------------------------------------------------
# Indexes
# -------------------------------------------------------------------
Index('ix_kids_gift_boxes_created_at', KidsGiftBox.created_at)
Index('ix_kids_gift_boxes_category', KidsGiftBox.category)
Index('ix_config_carousel_created_at', ConfigCarousel.created_at)
# -------------------------------------------------------------------
# DI + init helpers
# -------------------------------------------------------------------
async def init_db(target: Optional[AsyncEngine] = None):
    """Ensure tables exist."""
    target = target or engine
    await probe_db_connection(target)
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("DB init complete (tables ensured).")

async def check_db_health() -> dict:
    ok = await probe_db_connection()
    return {"status": "healthy" if ok else "unhealthy", "url": _redact_db_url(DATABASE_URL)}

import datetime
import re
import secrets

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

PROVIDER_COLORS = ("blue", "green", "purple", "amber", "red", "pink", "indigo", "cyan")
DEFAULT_PROVIDER_COLOR = PROVIDER_COLORS[0]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def new_provider_id(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-") or "provider"
    return f"{slug}-{secrets.token_hex(3)}"


def next_provider_color(used: list[str]) -> str:
    taken = set(used)
    for color in PROVIDER_COLORS:
        if color not in taken:
            return color
    return PROVIDER_COLORS[len(used) % len(PROVIDER_COLORS)]


class Base(DeclarativeBase):
    pass


class ProviderModel(Base):
    __tablename__ = "mcp_providers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(String, nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default=DEFAULT_PROVIDER_COLOR)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_on: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_on: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

"""Site settings and navigation model definitions."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class SiteSetting(Base):
    """JSON setting addressed by category and key."""

    __tablename__ = "site_settings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("category", "key", name="uq_site_setting_category_key"),
    )

    def __repr__(self) -> str:
        return f"<SiteSetting(category='{self.category}', key='{self.key}')>"


class NavigationItem(Base):
    """Flat navigation entry; nesting comes from parent_id."""

    __tablename__ = "navigation_items"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("navigation_items.id", ondelete="CASCADE"),
        nullable=True
    )
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    open_in_new_tab: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<NavigationItem(label='{self.label}', url='{self.url}')>"

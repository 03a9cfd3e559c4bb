from datetime import datetime

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

SYSTEM_USER = "system@local"


class AuditMixin:
    """Who/when columns shared by preshipments, groups and entry summaries."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=SYSTEM_USER,
        server_default=text(f"'{SYSTEM_USER}'"),
    )
    last_changed_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=SYSTEM_USER,
        server_default=text(f"'{SYSTEM_USER}'"),
    )

    def mark_changed(self, user_email: str | None) -> None:
        self.last_changed_by = user_email or SYSTEM_USER

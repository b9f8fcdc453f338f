"""
Plugin Model

Persisted status row of an installed plugin. One row per plugin id; the row
is deleted when the plugin is uninstalled.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PluginRecord(Base):
    """Installed plugin and its persisted activation flag and configuration."""

    __tablename__ = "plugins"

    id = Column(String(100), primary_key=True)

    # Metadata copied from the manifest at install time
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    version = Column(String(50), nullable=False, default="1.0.0")
    author = Column(String(200), nullable=False, default="")
    category = Column(String(100), nullable=False, default="Other")

    is_active = Column(Boolean, default=False, nullable=False)
    config = Column(JSON, nullable=False, default=dict)

    installed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<PluginRecord(id={self.id}, is_active={self.is_active})>"

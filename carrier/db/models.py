from dataclasses import dataclass
from typing import Any

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


@dataclass(frozen=True)
class GenericHumanModel:
    """Human-readable representation of an enumerated value."""

    value: Any
    title: str
    description: str


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AppSetting(Base, TimestampMixin):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(120), nullable=False, unique=True)
    value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)


class PermissionGroup(Base):
    __tablename__ = "permission_groups"

    TYPE_APP_INTERNAL = "app_internal"
    TYPE_APP_EXTERNAL = "app_external"

    TYPES = {
        TYPE_APP_INTERNAL: GenericHumanModel(
            TYPE_APP_INTERNAL, "Internal", "Group managed by the application itself."
        ),
        TYPE_APP_EXTERNAL: GenericHumanModel(
            TYPE_APP_EXTERNAL, "External", "Group synchronised from an external directory."
        ),
    }

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(40), nullable=False, default=TYPE_APP_INTERNAL)
    short_name = Column(String(60), nullable=False, unique=True)
    full_name = Column(String(160), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey("permission_groups.id", ondelete="SET NULL"), nullable=True)
    creation_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    creator_id = Column(Integer, nullable=True)

    parent = relationship("PermissionGroup", remote_side=[id], back_populates="children")
    children = relationship("PermissionGroup", back_populates="parent")

    @property
    def human_type(self) -> GenericHumanModel:
        return self.TYPES.get(self.type, GenericHumanModel(self.type, self.type, ""))

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Role(Base):
    __tablename__ = "roles"

    roleid: Mapped[int] = mapped_column(Integer, primary_key=True)
    rolename: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "Manager"

    users: Mapped[list["User"]] = relationship(back_populates="role")


class User(Base):
    __tablename__ = "users"

    userid: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    # Existing schema keeps the hash in a column called "password".
    password_hash: Mapped[str] = mapped_column("password", String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    level: Mapped[str | None] = mapped_column(String(1), nullable=True)  # "M" for managers/admins
    roleid: Mapped[int | None] = mapped_column(ForeignKey("roles.roleid", ondelete="SET NULL"), nullable=True)

    role: Mapped[Role | None] = relationship(back_populates="users", lazy="selectin")

    @property
    def rolename(self) -> str | None:
        return self.role.rolename if self.role else None


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Never holds credentials; metadata is a small JSON string.
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_userid: Mapped[int | None] = mapped_column(ForeignKey("users.userid", ondelete="SET NULL"), nullable=True)
    actor_username: Mapped[str | None] = mapped_column(String(150), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "auth.login"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Resource"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.hub.modules.resources.models import Category, Resource, UserResource  # noqa: E402,F401

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.hub.models import Base

if TYPE_CHECKING:
    from app.hub.models import User


class Category(Base):
    __tablename__ = "categories"

    categoryid: Mapped[int] = mapped_column(Integer, primary_key=True)
    categoryname: Mapped[str] = mapped_column(String(128), nullable=False)
    categorydescription: Mapped[str | None] = mapped_column(Text, nullable=True)

    resources: Mapped[list["Resource"]] = relationship(back_populates="category")


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        Index("idx_resources_isvetted", "isvetted"),
        Index("idx_resources_submittedby", "submittedby_userid"),
    )

    resourceid: Mapped[int] = mapped_column(Integer, primary_key=True)
    resourcename: Mapped[str] = mapped_column(String(255), nullable=False)
    resourceurl: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    resourcephone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    resourcedesc: Mapped[str | None] = mapped_column(Text, nullable=True)

    categoryid: Mapped[int | None] = mapped_column(ForeignKey("categories.categoryid", ondelete="SET NULL"), nullable=True)
    # Vetted rows are admin-curated; unvetted rows are user submissions.
    isvetted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submittedby_userid: Mapped[int | None] = mapped_column(ForeignKey("users.userid", ondelete="SET NULL"), nullable=True)

    category: Mapped[Category | None] = relationship(back_populates="resources", lazy="selectin")
    submitted_by: Mapped["User | None"] = relationship("User", lazy="select")
    associations: Mapped[list["UserResource"]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
    )

    @property
    def categoryname(self) -> str | None:
        return self.category.categoryname if self.category else None


class UserResource(Base):
    """Per-user interaction with a resource. A missing row means "not pinned"."""

    __tablename__ = "user_resource"

    userid: Mapped[int] = mapped_column(ForeignKey("users.userid", ondelete="CASCADE"), primary_key=True)
    resourceid: Mapped[int] = mapped_column(ForeignKey("resources.resourceid", ondelete="CASCADE"), primary_key=True)
    numviewed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favoritestatus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    resource: Mapped[Resource] = relationship(back_populates="associations")

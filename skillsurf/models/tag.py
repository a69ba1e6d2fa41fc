"""Tag + SkillTag ORM models — append-only tag names and their skill links."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from skillsurf.database import Base


def generate_id() -> str:
    return uuid.uuid4().hex


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(64), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class SkillTag(Base):
    __tablename__ = "skill_tags"

    skill_id: Mapped[str] = mapped_column(
        String(512), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )

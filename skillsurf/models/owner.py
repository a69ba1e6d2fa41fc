"""Owner ORM model — GitHub users/organizations that own skill repositories."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from skillsurf.database import Base


class Owner(Base):
    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)  # GitHub login
    login: Mapped[str] = mapped_column(String(128))
    type: Mapped[str] = mapped_column(String(32))  # User | Organization
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    html_url: Mapped[str] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

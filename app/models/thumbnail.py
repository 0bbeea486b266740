from datetime import datetime
from sqlalchemy import Boolean, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid_extensions import uuid7

from app.database import Base


class Thumbnail(Base):
    """One generation request and its outcome."""

    __tablename__ = "thumbnails"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid7())
    )

    # Owner, taken from the session identity
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Request parameters
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    prompt_used: Mapped[str] = mapped_column(Text, nullable=False, default="")
    style: Mapped[str] = mapped_column(String(64), nullable=False)
    aspect_ratio: Mapped[str] = mapped_column(String(16), nullable=False)
    color_scheme: Mapped[str] = mapped_column(String(32), nullable=False)
    # Stored for the client; the pipeline does not read it
    text_overlay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Outcome: exactly one of image_url / error once is_generating is False
    is_generating: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=True)
    error: Mapped[str] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationship back to user
    user: Mapped["User"] = relationship("User", back_populates="thumbnails")

    def __repr__(self) -> str:
        return f"<Thumbnail(id={self.id}, user_id={self.user_id}, is_generating={self.is_generating})>"

"""
User model for authentication and trade ownership.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class UserRecord(Base):
    """
    Represents a journal user. Seeded demo users have no password hash
    and cannot log in.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<UserRecord(id={self.id}, username={self.username})>"

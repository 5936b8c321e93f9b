from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, BigIntId


class User(Base):
    """Product owner. Users are provisioned outside this service."""
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    products = relationship("Product", back_populates="owner", cascade="all, delete-orphan")

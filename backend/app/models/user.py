# app/models/user.py
from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from app.core.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Always stored trimmed + lowercased
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    # Avatar URL (from the identity provider or profile)
    image = Column(String(1024), nullable=True)

    # Null for accounts that only ever signed in through an external provider
    password_hash = Column(String(255), nullable=True)

    # credentials | google | github
    provider = Column(String(20), nullable=False, server_default="credentials", default="credentials")
    # user | admin
    role = Column(String(20), nullable=False, server_default="user", default="user")

    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

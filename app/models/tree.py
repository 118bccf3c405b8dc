import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from app.database import Base


class Tree(Base):
    """
    A tenant: one family graph with its own admin and guest credentials.
    Every Person belongs to exactly one tree.
    """

    __tablename__ = "trees"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)

    # Admin credentials (read + write)
    admin_username = Column(String, unique=True, nullable=False, index=True)
    admin_password_hash = Column(String, nullable=False)

    # Guest credentials (read-only sharing)
    guest_username = Column(String, unique=True, nullable=False, index=True)
    guest_password_hash = Column(String, nullable=False)

    owner_email = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    persons = relationship(
        "Person",
        back_populates="tree",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.database import Base


class Person(Base):
    """
    A node in a tree's family graph.

    Parent edges are plain id columns (father_id / mother_id) pointing at
    other persons of the same tree. Dates are stored as canonical
    partial-date text: "YYYY" or "YYYY-MM-DD".
    """

    __tablename__ = "persons"

    id = Column(Integer, primary_key=True)

    tree_id = Column(
        String,
        ForeignKey("trees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)

    # "male" / "female", fixed at creation
    gender = Column(String(10), nullable=False)

    birth_date = Column(String, nullable=True)
    death_date = Column(String, nullable=True)

    trivia = Column(Text, nullable=True)

    # Root ancestor of the tree (at most one per tree)
    progenitor = Column(Boolean, default=False, nullable=False)

    father_id = Column(Integer, nullable=True, index=True)
    mother_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    tree = relationship("Tree", back_populates="persons")

    __table_args__ = (
        Index("ix_persons_tree_progenitor", "tree_id", "progenitor"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Person id={self.id} tree={self.tree_id} {self.full_name!r}>"

from typing import Any, Iterable, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from app.core.errors import PersonNotFound, TreeNotFound
from app.models.person import Person
from app.models.tree import Tree


def require_tree(db: Session, tree_id: str) -> Tree:
    tree = db.query(Tree).filter(Tree.id == tree_id).first()
    if not tree:
        raise TreeNotFound("Tree not found", tree_id=tree_id)
    return tree


class PersonStore:
    """
    Person reads and writes for ONE tree.

    Every query is filtered by tree_id, so a person of another tree
    looks exactly like a missing one.
    """

    def __init__(self, db: Session, tree_id: str):
        self.db = db
        self.tree_id = tree_id

    def _query(self):
        return self.db.query(Person).filter(Person.tree_id == self.tree_id)

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def get(self, person_id: Optional[int]) -> Optional[Person]:
        if person_id is None:
            return None
        return self._query().filter(Person.id == person_id).first()

    def require(self, person_id: int, label: str = "Person") -> Person:
        person = self.get(person_id)
        if not person:
            raise PersonNotFound(
                f"{label} with ID {person_id} not found",
                person_id=person_id,
                tree_id=self.tree_id,
            )
        return person

    def find_many(self, ids: Iterable[int]) -> list[Person]:
        ids = list(ids)
        if not ids:
            return []
        return self._query().filter(Person.id.in_(ids)).all()

    def find_progenitor(self) -> Optional[Person]:
        return (
            self._query()
            .filter(Person.progenitor == True)  # noqa: E712
            .order_by(Person.id.asc())
            .first()
        )

    def find_children(self, parent_id: int) -> list[Person]:
        return (
            self._query()
            .filter(or_(Person.father_id == parent_id, Person.mother_id == parent_id))
            .order_by(Person.id.asc())
            .all()
        )

    def has_children(self, parent_id: int) -> bool:
        return (
            self._query()
            .filter(or_(Person.father_id == parent_id, Person.mother_id == parent_id))
            .first()
            is not None
        )

    def search(self, name: str) -> list[Person]:
        # % and _ in the name are literal characters, not wildcards
        escaped = (
            name.strip().lower()
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        term = f"%{escaped}%"
        full_name = func.lower(Person.first_name + " " + Person.last_name)
        return (
            self._query()
            .filter(
                or_(
                    func.lower(Person.first_name).like(term, escape="\\"),
                    func.lower(Person.last_name).like(term, escape="\\"),
                    full_name.like(term, escape="\\"),
                )
            )
            .order_by(Person.last_name.asc(), Person.first_name.asc())
            .all()
        )

    def all(self) -> list[Person]:
        return self._query().order_by(Person.id.asc()).all()

    def count(self) -> int:
        return self._query().count()

    # ------------------------------------------------------------
    # Writes (flushed, never committed here)
    # ------------------------------------------------------------

    def insert(self, **fields: Any) -> Person:
        fields.pop("tree_id", None)
        person = Person(tree_id=self.tree_id, **fields)
        self.db.add(person)
        self.db.flush()
        return person

    def update(self, person: Person, fields: dict[str, Any]) -> Person:
        if person.tree_id != self.tree_id:
            raise PersonNotFound(
                f"Person with ID {person.id} not found",
                person_id=person.id,
                tree_id=self.tree_id,
            )
        for key, value in fields.items():
            setattr(person, key, value)
        self.db.flush()
        return person

    def delete(self, person: Person) -> None:
        self.db.delete(person)
        self.db.flush()

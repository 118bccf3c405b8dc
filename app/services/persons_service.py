"""
Person mutations for one tree.

Every structural mutation runs under the tree's mutation lock and inside
a single unit of work: validators read the current state, the writes
they justify are flushed, and the whole operation commits or rolls back
as one. Validators fail fast; the first broken rule aborts the operation.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.ancestry import AncestryGraph
from app.core.connectivity import (
    check_delete_connectivity,
    check_update_connectivity,
    ensure_single_progenitor,
    guard_new_person,
    resolve_policy,
)
from app.core.dates import normalize_date_text
from app.core.errors import (
    CycleDetected,
    GenealogyError,
    HasDependents,
    IdentityMismatch,
    InvalidPayload,
    InvalidRole,
    ParentAlreadyAssigned,
    PersonNotFound,
    SelfParent,
)
from app.core.locking import tenant_lock
from app.core.relationships import (
    FATHER,
    MOTHER,
    check_role,
    expected_gender,
    parent_field,
    role_for_gender,
    validate_parents,
)
from app.core.temporal import (
    Lifeline,
    check_lifespan,
    validate_child_against_parents,
    validate_parent_against_children,
)
from app.core.tenant_scope import PersonStore
from app.database import unit_of_work
from app.models.person import Person
from app.schemas.person_schema import PersonCreate, PromoteAncestorCreate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "birth_date",
    "death_date",
    "trivia",
    "progenitor",
    "father_id",
    "mother_id",
}
DATE_FIELDS = ("birth_date", "death_date")
NAME_FIELDS = ("first_name", "last_name")
PARENT_FIELDS = {FATHER: "father_id", MOTHER: "mother_id"}


def _unique(ids: Optional[Iterable[int]]) -> list[int]:
    seen: set[int] = set()
    out: list[int] = []
    for i in ids or []:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


class PersonsService:
    def __init__(self, db: Session, tree_id: str, policy: Optional[str] = None):
        self.db = db
        self.tree_id = tree_id
        self.store = PersonStore(db, tree_id)
        self.graph = AncestryGraph(self.store)
        self.policy = resolve_policy(policy)

    # ============================================================
    # PLUMBING
    # ============================================================

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[None]:
        with tenant_lock(self.tree_id):
            try:
                with unit_of_work(self.db):
                    yield
            except GenealogyError as e:
                logger.warning(
                    "%s rejected in tree %s: %s (%s)",
                    operation, self.tree_id, e.code, e.message,
                )
                raise
            except Exception:
                logger.exception("%s failed in tree %s, rolled back", operation, self.tree_id)
                raise

    def _lifeline(self, person: Optional[Person]) -> Optional[Lifeline]:
        return Lifeline.of(person) if person is not None else None

    def _validate_children(
        self,
        children_ids: list[int],
        gender: str,
        parent: Lifeline,
    ) -> list[Person]:
        """
        Children about to receive a parent of `gender`: all must exist in
        this tree, have that parent slot free, and be datable as children
        of `parent`.
        """
        if not children_ids:
            return []

        role = role_for_gender(gender)
        field = parent_field(role)

        by_id = {c.id: c for c in self.store.find_many(children_ids)}
        missing = [i for i in children_ids if i not in by_id]
        if missing:
            raise PersonNotFound(
                "One or more children not found",
                missing_ids=missing,
                tree_id=self.tree_id,
            )
        children = [by_id[i] for i in children_ids]

        for child in children:
            existing = getattr(child, field)
            if existing is not None:
                raise ParentAlreadyAssigned(
                    f"{child.first_name} already has a {role}",
                    child_id=child.id,
                    role=role,
                    existing_parent_id=existing,
                )

        validate_parent_against_children(parent, role, [Lifeline.of(c) for c in children])
        return children

    def _link(self, parent: Person, children: list[Person]) -> None:
        field = parent_field(role_for_gender(parent.gender))
        for child in children:
            self.store.update(child, {field: parent.id})

    # ============================================================
    # READS
    # ============================================================

    def find_all(self) -> list[Person]:
        return self.store.all()

    def find_by_id(self, person_id: int) -> Person:
        return self.store.require(person_id)

    def search(self, name: str) -> list[Person]:
        if not (name or "").strip():
            return []
        return self.store.search(name)

    def find_progenitor(self) -> Optional[Person]:
        return self.store.find_progenitor()

    # ============================================================
    # CREATE
    # ============================================================

    def create_person(self, payload: Union[PersonCreate, dict]) -> Person:
        if not isinstance(payload, PersonCreate):
            payload = PersonCreate(**payload)
        data = payload.model_dump()

        children_ids = _unique(data.pop("children_ids"))
        father_id = data.get("father_id")
        mother_id = data.get("mother_id")

        with self._mutation("create_person"):
            data["progenitor"] = guard_new_person(
                self.store,
                father_id=father_id,
                mother_id=mother_id,
                children_ids=children_ids,
                progenitor=data["progenitor"],
            )

            me = Lifeline.from_fields(
                data.get("birth_date"),
                data.get("death_date"),
                name=f"{data['first_name']} {data['last_name']}",
            )
            check_lifespan(me)

            if data["progenitor"]:
                ensure_single_progenitor(self.store)

            father, mother = validate_parents(self.store, father_id, mother_id)
            validate_child_against_parents(me, self._lifeline(father), self._lifeline(mother))

            children = self._validate_children(children_ids, data["gender"], me)

            # new person sits between its parents and its children
            for child in children:
                for pid in (father_id, mother_id):
                    if pid is not None and (child.id == pid or self.graph.is_ancestor(child.id, pid)):
                        raise CycleDetected(
                            f"Person {child.id} is an ancestor of parent {pid}; "
                            "linking it as a child would create a cycle",
                            child_id=child.id,
                            parent_id=pid,
                        )

            person = self.store.insert(**data)
            self._link(person, children)

        logger.info(
            "created person %s in tree %s (progenitor=%s, linked %d children)",
            person.id, self.tree_id, person.progenitor, len(children),
        )
        return person

    # ============================================================
    # UPDATE
    # ============================================================

    def _clean_patch(self, patch: Union[BaseModel, dict]) -> dict[str, Any]:
        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)
        patch = dict(patch)

        if "gender" in patch:
            raise InvalidPayload("Gender cannot be changed after creation", field="gender")

        unknown = sorted(set(patch) - UPDATABLE_FIELDS)
        if unknown:
            raise InvalidPayload(f"Unknown fields: {', '.join(unknown)}", fields=unknown)

        for name in NAME_FIELDS:
            if name in patch:
                value = (patch[name] or "").strip()
                if not value:
                    raise InvalidPayload(f"{name} cannot be empty", field=name)
                patch[name] = value

        for name in DATE_FIELDS:
            if name in patch:
                patch[name] = normalize_date_text(patch[name])

        if "progenitor" in patch and patch["progenitor"] is None:
            del patch["progenitor"]

        return patch

    def update_person(self, person_id: int, patch: Union[BaseModel, dict]) -> Person:
        patch = self._clean_patch(patch)

        with self._mutation("update_person"):
            person = self.store.require(person_id)

            for role, field in PARENT_FIELDS.items():
                if patch.get(field) is not None and patch[field] == person.id:
                    raise SelfParent(
                        "A person cannot be their own parent",
                        person_id=person.id,
                        role=role,
                    )

            father, mother = validate_parents(
                self.store, patch.get("father_id"), patch.get("mother_id")
            )

            birth = patch["birth_date"] if "birth_date" in patch else person.birth_date
            death = patch["death_date"] if "death_date" in patch else person.death_date
            me = Lifeline.from_fields(birth, death, person_id=person.id, name=person.full_name)

            if any(k in patch for k in ("birth_date", "father_id", "mother_id")):
                if "father_id" not in patch:
                    father = self.store.get(person.father_id)
                if "mother_id" not in patch:
                    mother = self.store.get(person.mother_id)
                validate_child_against_parents(me, self._lifeline(father), self._lifeline(mother))

            if any(k in patch for k in DATE_FIELDS):
                check_lifespan(me)
                children = self.store.find_children(person.id)
                if children:
                    validate_parent_against_children(
                        me,
                        role_for_gender(person.gender),
                        [Lifeline.of(c) for c in children],
                    )

            for role, field in PARENT_FIELDS.items():
                pid = patch.get(field)
                if pid is not None and self.graph.would_create_cycle(pid, person.id):
                    raise CycleDetected(
                        f"Cannot set {field} to {pid}: it would create a cycle",
                        person_id=person.id,
                        parent_id=pid,
                        role=role,
                    )

            if patch.get("progenitor") and not person.progenitor:
                ensure_single_progenitor(self.store, exclude_id=person.id)

            former_parent_ids = (person.father_id, person.mother_id)
            self.store.update(person, patch)
            check_update_connectivity(self.store, person, self.policy, former_parent_ids)

        logger.info(
            "updated person %s in tree %s: %s",
            person.id, self.tree_id, ", ".join(sorted(patch)) or "no changes",
        )
        return person

    # ============================================================
    # DELETE
    # ============================================================

    def delete_person(self, person_id: int) -> dict[str, str]:
        with self._mutation("delete_person"):
            person = self.store.require(person_id)

            children = self.store.find_children(person.id)
            if children:
                raise HasDependents(
                    f"Cannot delete person with ID {person.id}. This person has "
                    f"{len(children)} child(ren). Delete children first or remove "
                    "parent references.",
                    person_id=person.id,
                    child_ids=[c.id for c in children],
                )

            check_delete_connectivity(self.store, person, self.policy)

            full_name = person.full_name
            self.store.delete(person)

        logger.info("deleted person %s in tree %s", person_id, self.tree_id)
        return {"message": f"Person {full_name} deleted successfully"}

    def delete_orphaned_persons(self) -> dict[str, Any]:
        """Remove every non-progenitor with no parent and no child."""
        with self._mutation("delete_orphaned_persons"):
            orphans = [
                p
                for p in self.store.all()
                if not p.progenitor
                and p.father_id is None
                and p.mother_id is None
                and not self.store.has_children(p.id)
            ]
            for p in orphans:
                self.store.delete(p)

        logger.info("deleted %d orphaned persons in tree %s", len(orphans), self.tree_id)
        return {
            "message": f"Deleted {len(orphans)} orphaned person(s)",
            "deleted": len(orphans),
        }

    # ============================================================
    # LINK CHILDREN
    # ============================================================

    def link_children_to_parent(
        self,
        parent_id: int,
        children_ids: list[int],
        role: str,
    ) -> dict[str, Any]:
        expected_gender(role)
        ids = _unique(children_ids)

        with self._mutation("link_children_to_parent"):
            parent = self.store.require(parent_id, label="Parent")

            if not ids:
                raise InvalidPayload("children_ids is required", parent_id=parent_id)

            check_role(parent, role)

            if parent.id in ids:
                raise SelfParent(
                    "A person cannot be their own parent",
                    person_id=parent.id,
                    role=role,
                )

            for child_id in ids:
                if self.graph.would_create_cycle(parent.id, child_id):
                    raise CycleDetected(
                        f"Cannot link parent {parent.id} to child {child_id}: "
                        "it would create a cycle",
                        parent_id=parent.id,
                        child_id=child_id,
                    )

            children = self._validate_children(ids, parent.gender, Lifeline.of(parent))
            self._link(parent, children)

        logger.info(
            "linked %d children to %s %s in tree %s",
            len(children), role, parent.id, self.tree_id,
        )
        return {
            "message": f"Successfully linked {len(children)} children to {parent.full_name}",
            "linked": len(children),
        }

    # ============================================================
    # PROMOTE ANCESTOR
    # ============================================================

    def promote_ancestor(self, payload: Union[PromoteAncestorCreate, dict]) -> Person:
        """
        Insert a new root above the current progenitor and demote it.
        Both writes commit together or not at all.
        """
        if not isinstance(payload, PromoteAncestorCreate):
            payload = PromoteAncestorCreate(**payload)
        data = payload.model_dump()

        claimed_id = data.pop("current_progenitor_id")
        role = data.pop("relationship")

        with self._mutation("promote_ancestor"):
            current = self.store.find_progenitor()
            if not current:
                raise PersonNotFound(
                    "No progenitor exists in the family tree",
                    tree_id=self.tree_id,
                )

            if current.id != claimed_id:
                raise IdentityMismatch(
                    f"Person ID {claimed_id} is not the current progenitor. "
                    f"Actual progenitor is {current.full_name} (ID: {current.id})",
                    claimed_progenitor_id=claimed_id,
                    current_progenitor_id=current.id,
                )

            gender = expected_gender(role)
            if data["gender"] != gender:
                raise InvalidRole(
                    f"New {role} must be {gender}, not {data['gender']}",
                    role=role,
                    expected_gender=gender,
                    actual_gender=data["gender"],
                )

            ancestor = Lifeline.from_fields(
                data.get("birth_date"),
                data.get("death_date"),
                name=f"{data['first_name']} {data['last_name']}",
            )
            check_lifespan(ancestor)

            field = parent_field(role)
            if getattr(current, field) is not None:
                raise ParentAlreadyAssigned(
                    f"{current.first_name} already has a {role}",
                    child_id=current.id,
                    role=role,
                    existing_parent_id=getattr(current, field),
                )

            validate_parent_against_children(ancestor, role, [Lifeline.of(current)])

            new_ancestor = self.store.insert(**data, progenitor=True)
            self.store.update(current, {"progenitor": False, field: new_ancestor.id})

        logger.info(
            "promoted %s as %s of former progenitor %s in tree %s",
            new_ancestor.id, role, current.id, self.tree_id,
        )
        return new_ancestor

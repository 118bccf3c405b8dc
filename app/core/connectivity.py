import logging
from typing import Optional, Sequence

from app.config import settings
from app.core.errors import DisconnectedPerson, DuplicateProgenitor, InvalidPayload
from app.core.tenant_scope import PersonStore
from app.models.person import Person

logger = logging.getLogger(__name__)

LENIENT = "lenient"
STRICT = "strict"
POLICIES = (LENIENT, STRICT)


def resolve_policy(policy: Optional[str] = None) -> str:
    value = (policy or settings.CONNECTIVITY_POLICY or LENIENT).lower()
    if value not in POLICIES:
        raise InvalidPayload(
            f"Unknown connectivity policy {value!r}",
            policy=value,
            allowed=list(POLICIES),
        )
    return value


# ============================================================
# CREATE-TIME GUARD
# ============================================================

def guard_new_person(
    store: PersonStore,
    father_id: Optional[int] = None,
    mother_id: Optional[int] = None,
    children_ids: Optional[Sequence[int]] = None,
    progenitor: bool = False,
) -> bool:
    """
    A new person must hang off the graph somewhere: a parent, a child,
    or the progenitor flag. The first person of an empty tree becomes
    progenitor automatically.

    Returns the progenitor flag the person should be stored with.
    """
    if father_id is not None or mother_id is not None or children_ids:
        return bool(progenitor)

    if progenitor:
        return True

    if store.count() == 0:
        logger.info("tree %s is empty, first person becomes progenitor", store.tree_id)
        return True

    raise DisconnectedPerson(
        "A person must have at least one parent or child to be connected to the tree",
        tree_id=store.tree_id,
    )


def ensure_single_progenitor(store: PersonStore, exclude_id: Optional[int] = None) -> None:
    current = store.find_progenitor()
    if current and current.id != exclude_id:
        raise DuplicateProgenitor(
            f"Tree already has a progenitor: {current.full_name} (ID: {current.id})",
            current_progenitor_id=current.id,
            tree_id=store.tree_id,
        )


# ============================================================
# UPDATE / DELETE POLICY
# ============================================================

def is_connected(store: PersonStore, person: Person, ignore_child_id: Optional[int] = None) -> bool:
    if person.progenitor:
        return True
    if person.father_id is not None or person.mother_id is not None:
        return True
    return any(c.id != ignore_child_id for c in store.find_children(person.id))


def check_update_connectivity(
    store: PersonStore,
    person: Person,
    policy: str,
    former_parent_ids: Sequence[Optional[int]] = (),
) -> None:
    """
    Run after the patch is applied (flushed), before commit.

    Covers the updated person and every parent it stopped referencing.
    """
    if policy != STRICT:
        return
    if not is_connected(store, person):
        raise DisconnectedPerson(
            f"Update would leave {person.full_name} (ID: {person.id}) "
            "without any parent, child or progenitor role",
            person_id=person.id,
            policy=policy,
        )
    for parent_id in former_parent_ids:
        if parent_id is None or parent_id in (person.father_id, person.mother_id):
            continue
        parent = store.get(parent_id)
        if parent and not is_connected(store, parent):
            raise DisconnectedPerson(
                f"Unlinking {person.full_name} (ID: {person.id}) would disconnect "
                f"{parent.full_name} (ID: {parent.id}) from the tree",
                person_id=person.id,
                stranded_person_id=parent.id,
                policy=policy,
            )


def check_delete_connectivity(store: PersonStore, person: Person, policy: str) -> None:
    """Deleting a leaf must not strand the parents it was holding on to."""
    if policy != STRICT:
        return
    for parent_id in (person.father_id, person.mother_id):
        parent = store.get(parent_id)
        if parent and not is_connected(store, parent, ignore_child_id=person.id):
            raise DisconnectedPerson(
                f"Deleting {person.full_name} (ID: {person.id}) would disconnect "
                f"{parent.full_name} (ID: {parent.id}) from the tree",
                person_id=person.id,
                stranded_person_id=parent.id,
                policy=policy,
            )

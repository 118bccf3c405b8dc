from typing import Optional

from app.core.errors import InvalidPayload, InvalidRole
from app.core.tenant_scope import PersonStore
from app.models.person import Person

FATHER = "father"
MOTHER = "mother"
MALE = "male"
FEMALE = "female"

ROLES = (FATHER, MOTHER)
GENDERS = (MALE, FEMALE)

_GENDER_FOR_ROLE = {FATHER: MALE, MOTHER: FEMALE}
_ROLE_FOR_GENDER = {MALE: FATHER, FEMALE: MOTHER}


def expected_gender(role: str) -> str:
    try:
        return _GENDER_FOR_ROLE[role]
    except KeyError:
        raise InvalidPayload(f"Unknown parent role: {role!r}", role=role)


def role_for_gender(gender: str) -> str:
    try:
        return _ROLE_FOR_GENDER[gender]
    except KeyError:
        raise InvalidPayload(f"Unknown gender: {gender!r}", gender=gender)


def parent_field(role: str) -> str:
    """Column on the child that holds a parent of this role."""
    expected_gender(role)
    return f"{role}_id"


def check_role(person: Person, role: str) -> None:
    gender = expected_gender(role)
    if person.gender != gender:
        raise InvalidRole(
            f"Person with ID {person.id} is {person.gender}, cannot be a {role}",
            person_id=person.id,
            role=role,
            expected_gender=gender,
            actual_gender=person.gender,
        )


def resolve_parent(store: PersonStore, person_id: Optional[int], role: str) -> Optional[Person]:
    """
    Look up a claimed parent in the tree and check its gender.
    Returns None when no id was given.
    """
    if person_id is None:
        return None
    parent = store.require(person_id, label=role.capitalize())
    check_role(parent, role)
    return parent


def validate_parents(
    store: PersonStore,
    father_id: Optional[int] = None,
    mother_id: Optional[int] = None,
) -> tuple[Optional[Person], Optional[Person]]:
    father = resolve_parent(store, father_id, FATHER)
    mother = resolve_parent(store, mother_id, MOTHER)
    return father, mother

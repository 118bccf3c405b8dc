"""
Birth/death plausibility between parents and children.

Rules trade calendar exactness for plausibility: historical dates are
often known only to the year, so the death-window rule is chosen from a
table keyed by (role, death precision, birth precision).

All functions are pure. They read nothing but their arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from app.config import settings
from app.core.dates import FULL, YEAR, PartialDate, add_months, both_full, optional_partial_date
from app.core.errors import ImplausibleAge, ImplausibleDeathWindow
from app.core.relationships import FATHER, MOTHER

FATHER_CONCEPTION_MONTHS = 9


@dataclass(frozen=True)
class Lifeline:
    """Just the parts of a person the date rules look at."""

    person_id: Optional[int]
    name: str
    birth: Optional[PartialDate] = None
    death: Optional[PartialDate] = None

    @classmethod
    def of(cls, person: Any) -> "Lifeline":
        first = getattr(person, "first_name", None) or ""
        last = getattr(person, "last_name", None) or ""
        return cls(
            person_id=getattr(person, "id", None),
            name=f"{first} {last}".strip() or "person",
            birth=optional_partial_date(getattr(person, "birth_date", None)),
            death=optional_partial_date(getattr(person, "death_date", None)),
        )

    @classmethod
    def from_fields(
        cls,
        birth_date: Optional[str],
        death_date: Optional[str] = None,
        person_id: Optional[int] = None,
        name: str = "person",
    ) -> "Lifeline":
        return cls(
            person_id=person_id,
            name=name,
            birth=optional_partial_date(birth_date),
            death=optional_partial_date(death_date),
        )


# ------------------------------------------------------------
# Death window rule table
# ------------------------------------------------------------

def _year_buffer(years: int) -> Callable[[PartialDate, PartialDate], bool]:
    def rule(death: PartialDate, birth: PartialDate) -> bool:
        return birth.year <= death.year + years
    return rule


def _within_conception_window(death: PartialDate, birth: PartialDate) -> bool:
    try:
        cutoff = add_months(death.value, FATHER_CONCEPTION_MONTHS)
    except OverflowError:
        # cutoff lies past the last representable date
        return True
    return birth.value <= cutoff


def _alive_at_birth(death: PartialDate, birth: PartialDate) -> bool:
    return birth.value <= death.value


# (role, death precision, child birth precision) -> (rule name, predicate)
DEATH_WINDOW_RULES: dict[tuple[str, str, str], tuple[str, Callable[[PartialDate, PartialDate], bool]]] = {
    (FATHER, YEAR, YEAR): ("father_death_year_plus_one", _year_buffer(1)),
    (FATHER, YEAR, FULL): ("father_death_year_plus_one", _year_buffer(1)),
    (FATHER, FULL, FULL): ("father_death_plus_nine_months", _within_conception_window),
    (FATHER, FULL, YEAR): ("father_death_year_plus_one", _year_buffer(1)),
    (MOTHER, YEAR, YEAR): ("mother_death_same_year", _year_buffer(0)),
    (MOTHER, YEAR, FULL): ("mother_death_same_year", _year_buffer(0)),
    (MOTHER, FULL, FULL): ("mother_alive_at_birth", _alive_at_birth),
    (MOTHER, FULL, YEAR): ("mother_death_same_year", _year_buffer(0)),
}


# ------------------------------------------------------------
# Single parent / child pair
# ------------------------------------------------------------

def check_parent_age(parent: Lifeline, role: str, child: Lifeline) -> None:
    if parent.birth is None or child.birth is None:
        return

    min_age = settings.MIN_PARENT_AGE
    gap = child.birth.year - parent.birth.year
    details = {
        "role": role,
        "parent_id": parent.person_id,
        "child_id": child.person_id,
        "parent_birth": str(parent.birth),
        "child_birth": str(child.birth),
        "age_gap": gap,
        "min_parent_age": min_age,
    }

    if gap <= 0:
        raise ImplausibleAge(
            f"{role.capitalize()} (born {parent.birth}) cannot be born in or after "
            f"the same year as {child.name} (born {child.birth})",
            rule="parent_born_not_before_child",
            **details,
        )

    if gap < min_age:
        raise ImplausibleAge(
            f"{role.capitalize()} must be at least {min_age} years old when "
            f"{child.name} was born (born {child.birth}); with birth year "
            f"{parent.birth.year} the {role} would be {gap}",
            rule="parent_too_young",
            **details,
        )


def check_death_window(parent: Lifeline, role: str, child: Lifeline) -> None:
    if parent.death is None or child.birth is None:
        return

    rule_name, allowed = DEATH_WINDOW_RULES[(role, parent.death.precision, child.birth.precision)]
    if allowed(parent.death, child.birth):
        return

    if role == FATHER:
        reason = "too early for the conception of"
    else:
        reason = "before the birth of"

    raise ImplausibleDeathWindow(
        f"{role.capitalize()} died {parent.death}, {reason} {child.name} (born {child.birth})",
        rule=rule_name,
        role=role,
        parent_id=parent.person_id,
        child_id=child.person_id,
        parent_death=str(parent.death),
        child_birth=str(child.birth),
    )


def check_parent_child(parent: Optional[Lifeline], role: str, child: Lifeline) -> None:
    if parent is None or child.birth is None:
        return
    check_parent_age(parent, role, child)
    check_death_window(parent, role, child)


# ------------------------------------------------------------
# Entry points
# ------------------------------------------------------------

def validate_child_against_parents(
    child: Lifeline,
    father: Optional[Lifeline] = None,
    mother: Optional[Lifeline] = None,
) -> None:
    """child -> parents direction: no-op when the child's birth is unknown."""
    if child.birth is None:
        return
    check_parent_child(father, FATHER, child)
    check_parent_child(mother, MOTHER, child)


def validate_parent_against_children(
    parent: Lifeline,
    role: str,
    children: Iterable[Lifeline],
) -> None:
    """parent -> children direction, same arithmetic per pair."""
    for child in children:
        check_parent_child(parent, role, child)


def check_lifespan(subject: Lifeline) -> None:
    birth, death = subject.birth, subject.death
    if birth is None or death is None:
        return

    if both_full(birth, death):
        ok = death.value >= birth.value
    else:
        ok = death.year >= birth.year

    if not ok:
        raise ImplausibleDeathWindow(
            f"Death date {death} cannot be before birth date {birth}",
            rule="death_before_birth",
            person_id=subject.person_id,
            birth=str(birth),
            death=str(death),
        )

import pytest

from app.core.errors import ImplausibleAge, ImplausibleDeathWindow
from app.core.temporal import (
    Lifeline,
    check_lifespan,
    validate_child_against_parents,
    validate_parent_against_children,
)


def life(birth=None, death=None, person_id=None, name="someone"):
    return Lifeline.from_fields(birth, death, person_id=person_id, name=name)


# ============================================================================
# Minimum parent age
# ============================================================================

class TestParentAge:
    def test_no_child_birth_is_a_no_op(self):
        validate_child_against_parents(life(), life("2000"), life("2000"))

    def test_parent_without_birth_is_skipped(self):
        validate_child_against_parents(life("1920"), life(), None)

    def test_fourteen_years_is_enough(self):
        validate_child_against_parents(life("1914"), life("1900"), life("1900-06-01"))

    def test_parent_too_young(self):
        with pytest.raises(ImplausibleAge) as exc:
            validate_child_against_parents(life("1905", person_id=3), life("1900", person_id=1))
        assert exc.value.details["rule"] == "parent_too_young"
        assert exc.value.details["age_gap"] == 5
        assert exc.value.details["min_parent_age"] == 14
        assert exc.value.details["parent_id"] == 1
        assert exc.value.details["child_id"] == 3

    def test_parent_born_same_year(self):
        with pytest.raises(ImplausibleAge) as exc:
            validate_child_against_parents(life("1900"), None, life("1900-12-31"))
        assert exc.value.details["rule"] == "parent_born_not_before_child"
        assert exc.value.details["role"] == "mother"

    def test_parent_born_after_child(self):
        with pytest.raises(ImplausibleAge):
            validate_child_against_parents(life("1890"), life("1900"))


# ============================================================================
# Father death window
# ============================================================================

class TestFatherDeathWindow:
    def test_year_only_death_allows_one_year(self):
        validate_child_against_parents(life("1951"), life("1900", "1950"))

    def test_year_only_death_rejects_two_years(self):
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_child_against_parents(life("1952"), life("1900", "1950"))
        assert exc.value.details["rule"] == "father_death_year_plus_one"
        assert exc.value.details["parent_death"] == "1950"
        assert exc.value.details["child_birth"] == "1952"

    def test_year_only_death_full_birth(self):
        validate_child_against_parents(life("1951-12-31"), life("1900", "1950"))
        with pytest.raises(ImplausibleDeathWindow):
            validate_child_against_parents(life("1952-01-01"), life("1900", "1950"))

    def test_full_dates_use_nine_months(self):
        father = life("1900", "1950-01-15")
        validate_child_against_parents(life("1950-10-15"), father)
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_child_against_parents(life("1950-10-16"), father)
        assert exc.value.details["rule"] == "father_death_plus_nine_months"

    def test_nine_months_from_month_end_rolls_over(self):
        father = life("1970", "2000-05-31")
        validate_child_against_parents(life("2001-03-01"), father)
        validate_child_against_parents(life("2001-03-03"), father)
        with pytest.raises(ImplausibleDeathWindow):
            validate_child_against_parents(life("2001-03-04"), father)

    def test_window_past_the_last_representable_date(self):
        validate_child_against_parents(life("9999-06-01"), life("9980", "9999-05-01"))

    def test_mixed_precision_falls_back_to_year_buffer(self):
        father = life("1900", "1950-01-15")
        validate_child_against_parents(life("1951"), father)
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_child_against_parents(life("1952"), father)
        assert exc.value.details["rule"] == "father_death_year_plus_one"


# ============================================================================
# Mother death window
# ============================================================================

class TestMotherDeathWindow:
    def test_year_only_death_allows_same_year(self):
        validate_child_against_parents(life("1950"), None, life("1900", "1950"))

    def test_year_only_death_rejects_next_year(self):
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_child_against_parents(life("1951"), None, life("1900", "1950"))
        assert exc.value.details["rule"] == "mother_death_same_year"

    def test_full_dates_mother_alive_through_birth(self):
        mother = life("1900", "1950-05-01")
        validate_child_against_parents(life("1950-05-01"), None, mother)
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_child_against_parents(life("1950-05-02"), None, mother)
        assert exc.value.details["rule"] == "mother_alive_at_birth"

    def test_mixed_precision_same_year(self):
        mother = life("1900", "1950-05-01")
        validate_child_against_parents(life("1950"), None, mother)
        with pytest.raises(ImplausibleDeathWindow):
            validate_child_against_parents(life("1951"), None, mother)


# ============================================================================
# Parent -> children direction
# ============================================================================

class TestParentAgainstChildren:
    def test_all_children_checked(self):
        children = [life("1930", person_id=1), life("1945", person_id=2)]
        validate_parent_against_children(life("1910", "1960"), "father", children)

    def test_first_offending_child_is_reported(self):
        children = [life("1930", person_id=1), life("1920", person_id=2), life("1915", person_id=3)]
        with pytest.raises(ImplausibleAge) as exc:
            validate_parent_against_children(life("1910"), "mother", children)
        assert exc.value.details["child_id"] == 2

    def test_children_without_birth_are_skipped(self):
        validate_parent_against_children(life("1910", "1911"), "father", [life()])

    def test_same_rule_table_as_child_direction(self):
        with pytest.raises(ImplausibleDeathWindow) as exc:
            validate_parent_against_children(life("1900", "1950"), "mother", [life("1951")])
        assert exc.value.details["rule"] == "mother_death_same_year"


# ============================================================================
# Lifespan and purity
# ============================================================================

class TestLifespan:
    def test_death_after_birth(self):
        check_lifespan(life("1900", "1950"))
        check_lifespan(life("1900-05-01", "1900-05-01"))

    def test_death_before_birth_by_year(self):
        with pytest.raises(ImplausibleDeathWindow) as exc:
            check_lifespan(life("1900", "1899-12-31"))
        assert exc.value.details["rule"] == "death_before_birth"

    def test_death_before_birth_full_dates(self):
        with pytest.raises(ImplausibleDeathWindow):
            check_lifespan(life("1900-05-02", "1900-05-01"))

    def test_same_year_mixed_precision_is_fine(self):
        check_lifespan(life("1900-12-01", "1900"))


def test_validation_is_repeatable():
    child, father, mother = life("1952"), life("1900", "1950"), life("1905")
    outcomes = []
    for _ in range(2):
        try:
            validate_child_against_parents(child, father, mother)
            outcomes.append("ok")
        except ImplausibleDeathWindow as e:
            outcomes.append(e.details["rule"])
    assert outcomes == ["father_death_year_plus_one", "father_death_year_plus_one"]

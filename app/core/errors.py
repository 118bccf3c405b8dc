from typing import Any


class GenealogyError(Exception):
    """
    Base for every rule violation raised by the graph engine.

    `details` carries the structured facts behind the message (ids,
    the rule name, the values that were compared) so callers can render
    their own text.
    """

    code = "genealogy_error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# ------------------------------------------------------------
# Lookups
# ------------------------------------------------------------

class NotFound(GenealogyError):
    code = "not_found"
    status_code = 404


class PersonNotFound(NotFound):
    pass


class TreeNotFound(NotFound):
    pass


# ------------------------------------------------------------
# Payload / format
# ------------------------------------------------------------

class InvalidPayload(GenealogyError):
    code = "invalid_payload"


class InvalidDate(GenealogyError):
    code = "invalid_date"
    status_code = 422


# ------------------------------------------------------------
# Graph rules
# ------------------------------------------------------------

class InvalidRole(GenealogyError):
    code = "invalid_role"


class ImplausibleAge(GenealogyError):
    code = "implausible_age"


class ImplausibleDeathWindow(GenealogyError):
    code = "implausible_death_window"


class CycleDetected(GenealogyError):
    code = "cycle_detected"


class SelfParent(GenealogyError):
    code = "self_parent"


class DisconnectedPerson(GenealogyError):
    code = "disconnected_person"


# ------------------------------------------------------------
# Conflicts with current state
# ------------------------------------------------------------

class DuplicateProgenitor(GenealogyError):
    code = "duplicate_progenitor"
    status_code = 409


class IdentityMismatch(GenealogyError):
    code = "identity_mismatch"
    status_code = 409


class HasDependents(GenealogyError):
    code = "has_dependents"
    status_code = 409


class ParentAlreadyAssigned(GenealogyError):
    code = "parent_already_assigned"
    status_code = 409

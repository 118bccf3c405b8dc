from typing import Optional, List, Literal
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.core.dates import normalize_date_text
from app.core.errors import InvalidDate


Gender = Literal["male", "female"]
ParentRole = Literal["father", "mother"]


def _clean_date(value: Optional[str]) -> Optional[str]:
    try:
        return normalize_date_text(value)
    except InvalidDate as e:
        raise ValueError(e.message)


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


# --------------------------------------------------
# BASE
# --------------------------------------------------
class PersonBase(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    gender: Gender

    # "YYYY" or "YYYY-MM-DD"
    birth_date: Optional[str] = None
    death_date: Optional[str] = None

    trivia: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def clean_names(cls, value):
        return _clean_name(value)

    @field_validator("birth_date", "death_date")
    @classmethod
    def clean_dates(cls, value):
        return _clean_date(value)


# --------------------------------------------------
# CREATE
# --------------------------------------------------
class PersonCreate(PersonBase):
    progenitor: bool = False

    father_id: Optional[int] = None
    mother_id: Optional[int] = None

    # For adding an unknown ancestor above existing persons
    children_ids: List[int] = Field(default_factory=list)


# --------------------------------------------------
# UPDATE (gender is fixed at creation)
# --------------------------------------------------
class PersonUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    trivia: Optional[str] = None

    progenitor: Optional[bool] = None

    father_id: Optional[int] = None
    mother_id: Optional[int] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def clean_names(cls, value):
        return _clean_name(value)

    @field_validator("birth_date", "death_date")
    @classmethod
    def clean_dates(cls, value):
        return _clean_date(value)


# --------------------------------------------------
# PROMOTE ANCESTOR
# --------------------------------------------------
class PromoteAncestorCreate(PersonBase):
    current_progenitor_id: int
    relationship: ParentRole


# --------------------------------------------------
# LINK CHILDREN
# --------------------------------------------------
class LinkChildrenPayload(BaseModel):
    children_ids: List[int]
    parent_type: ParentRole


class LinkChildrenOut(BaseModel):
    message: str
    linked: int


# --------------------------------------------------
# OUT
# --------------------------------------------------
class PersonOut(BaseModel):
    id: int
    tree_id: str

    first_name: str
    last_name: str
    gender: str

    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    trivia: Optional[str] = None

    progenitor: bool

    father_id: Optional[int] = None
    mother_id: Optional[int] = None

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageOut(BaseModel):
    message: str


class DeleteOrphansOut(BaseModel):
    message: str
    deleted: int

# app/routers/persons_router.py

from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.auth import TreeContext, get_current_tree, require_admin
from app.core.tenant_scope import require_tree
from app.services.persons_service import PersonsService

from app.schemas.person_schema import (
    PersonCreate,
    PersonUpdate,
    PersonOut,
    PromoteAncestorCreate,
    LinkChildrenPayload,
    LinkChildrenOut,
    MessageOut,
    DeleteOrphansOut,
)

router = APIRouter(prefix="/persons", tags=["Persons"])


# ============================================================
# SERVICE DEPS (tree comes from the token, never from the URL)
# ============================================================

def _service(db: Session, ctx: TreeContext) -> PersonsService:
    require_tree(db, ctx.tree_id)
    return PersonsService(db, ctx.tree_id)


def reader_service(
    db: Session = Depends(get_db),
    ctx: TreeContext = Depends(get_current_tree),
) -> PersonsService:
    return _service(db, ctx)


def admin_service(
    db: Session = Depends(get_db),
    ctx: TreeContext = Depends(require_admin),
) -> PersonsService:
    return _service(db, ctx)


# ============================================================
# CREATE
# ============================================================

@router.post("", response_model=PersonOut)
def create_person(
    payload: PersonCreate,
    service: PersonsService = Depends(admin_service),
):
    return service.create_person(payload)


# ============================================================
# LIST / SEARCH
# ============================================================

@router.get("", response_model=List[PersonOut])
def list_persons(
    name: Optional[str] = None,
    service: PersonsService = Depends(reader_service),
):
    if name:
        return service.search(name)
    return service.find_all()


# ============================================================
# PROGENITOR
# ============================================================

@router.get("/progenitor", response_model=Optional[PersonOut])
def get_progenitor(service: PersonsService = Depends(reader_service)):
    return service.find_progenitor()


@router.post("/promote-ancestor", response_model=PersonOut)
def promote_ancestor(
    payload: PromoteAncestorCreate,
    service: PersonsService = Depends(admin_service),
):
    return service.promote_ancestor(payload)


# ============================================================
# ORPHANS
# ============================================================

@router.delete("/orphans", response_model=DeleteOrphansOut)
def delete_orphans(service: PersonsService = Depends(admin_service)):
    return service.delete_orphaned_persons()


# ============================================================
# SINGLE PERSON
# ============================================================

@router.get("/{person_id}", response_model=PersonOut)
def get_person(
    person_id: int,
    service: PersonsService = Depends(reader_service),
):
    return service.find_by_id(person_id)


@router.patch("/{person_id}", response_model=PersonOut)
def update_person(
    person_id: int,
    payload: PersonUpdate,
    service: PersonsService = Depends(admin_service),
):
    # Only fields actually sent are applied (null clears a parent link)
    return service.update_person(person_id, payload.model_dump(exclude_unset=True))


@router.delete("/{person_id}", response_model=MessageOut)
def delete_person(
    person_id: int,
    service: PersonsService = Depends(admin_service),
):
    return service.delete_person(person_id)


@router.patch("/{person_id}/link-children", response_model=LinkChildrenOut)
def link_children(
    person_id: int,
    payload: LinkChildrenPayload,
    service: PersonsService = Depends(admin_service),
):
    return service.link_children_to_parent(
        person_id,
        payload.children_ids,
        payload.parent_type,
    )

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field

from app.database import get_db

from app.auth import (
    TreeContext,
    register_tree,
    authenticate,
    create_access_token,
    get_current_tree,
    ADMIN,
)
from app.core.tenant_scope import require_tree


router = APIRouter(prefix="/auth", tags=["Authentication"])

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


# ---------- Pydantic request models ----------

class RegisterRequest(BaseModel):
    tree_name: str = Field(min_length=2, max_length=100)

    admin_username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    admin_password: str = Field(min_length=8, max_length=100)

    guest_username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    guest_password: str = Field(min_length=6, max_length=100)

    email: EmailStr


class LoginRequest(BaseModel):
    username: str
    password: str


def _token_response(tree, role: str) -> dict:
    return {
        "access_token": create_access_token(tree, role),
        "token_type": "bearer",
        "tree_id": tree.id,
        "tree_name": tree.name,
        "role": role,
    }


# ----------------- REGISTER ------------------

@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    password = payload.admin_password
    if not (
        any(c.islower() for c in password)
        and any(c.isupper() for c in password)
        and any(c.isdigit() for c in password)
    ):
        raise HTTPException(
            status_code=400,
            detail="Admin password must contain at least one uppercase letter, "
            "one lowercase letter, and one number",
        )

    try:
        tree = register_tree(
            db,
            tree_name=payload.tree_name,
            admin_username=payload.admin_username,
            admin_password=payload.admin_password,
            guest_username=payload.guest_username,
            guest_password=payload.guest_password,
            email=payload.email,
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _token_response(tree, ADMIN)


# ------------------- LOGIN -------------------

@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    result = authenticate(db, payload.username, payload.password)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    tree, role = result
    return _token_response(tree, role)


# -------------------- ME ---------------------

@router.get("/me")
def get_me(
    ctx: TreeContext = Depends(get_current_tree),
    db: Session = Depends(get_db),
):
    out = {
        "tree_id": ctx.tree_id,
        "role": ctx.role,
        "tree_name": ctx.tree_name,
    }

    # Owner names are only shown to admins
    if ctx.is_admin:
        tree = require_tree(db, ctx.tree_id)
        out["first_name"] = tree.first_name or ""
        out["last_name"] = tree.last_name or ""

    return out

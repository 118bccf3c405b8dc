from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
import bcrypt

from app.config import settings
from app.models.tree import Tree


ADMIN = "admin"
GUEST = "guest"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class TreeContext:
    """Who is calling: the tree they logged into and with which role."""

    tree_id: str
    role: str
    tree_name: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


# ============================================================
# PASSWORD HELPERS
# ============================================================

def hash_password(password: str) -> str:
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.checkpw(password_bytes, hashed.encode())


# ============================================================
# REGISTER TREE
# ============================================================

def username_taken(db: Session, username: str) -> bool:
    name = username.lower()
    existing = (
        db.query(Tree)
        .filter(
            or_(
                func.lower(Tree.admin_username) == name,
                func.lower(Tree.guest_username) == name,
            )
        )
        .first()
    )
    return existing is not None


def register_tree(
    db: Session,
    tree_name: str,
    admin_username: str,
    admin_password: str,
    guest_username: str,
    guest_password: str,
    email: Optional[str] = None,
) -> Tree:
    if admin_username.lower() == guest_username.lower():
        raise ValueError("Admin and guest usernames must be different")

    if username_taken(db, admin_username):
        raise ValueError("Admin username already taken")

    if username_taken(db, guest_username):
        raise ValueError("Guest username already taken")

    tree = Tree(
        name=tree_name,
        admin_username=admin_username,
        admin_password_hash=hash_password(admin_password),
        guest_username=guest_username,
        guest_password_hash=hash_password(guest_password),
        owner_email=email,
    )

    db.add(tree)
    db.commit()
    db.refresh(tree)
    return tree


# ============================================================
# LOGIN (admin OR guest username)
# ============================================================

def authenticate(db: Session, username: str, password: str) -> Optional[tuple[Tree, str]]:
    tree = db.query(Tree).filter(Tree.admin_username == username).first()
    if tree:
        role, hashed = ADMIN, tree.admin_password_hash
    else:
        tree = db.query(Tree).filter(Tree.guest_username == username).first()
        if not tree:
            return None
        role, hashed = GUEST, tree.guest_password_hash

    if not verify_password(password, hashed):
        return None
    return tree, role


# ============================================================
# TOKEN CREATION
# ============================================================

def create_access_token(tree: Tree, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": tree.id,
        "role": role,
        "tree_name": tree.name,
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# ============================================================
# CURRENT TREE
# ============================================================

def get_current_tree(token: str = Depends(oauth2_scheme)) -> TreeContext:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    tree_id = payload.get("sub")
    role = payload.get("role")

    if not tree_id or role not in (ADMIN, GUEST):
        raise HTTPException(status_code=401, detail="Invalid token")

    return TreeContext(tree_id=tree_id, role=role, tree_name=payload.get("tree_name") or "")


def require_admin(ctx: TreeContext = Depends(get_current_tree)) -> TreeContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return ctx

# Fichier: studymind/crud/user_crud.py

from typing import Optional

from sqlalchemy.orm import Session

from studymind.core.security import get_password_hash
from studymind.models.user.user_model import User
from studymind.schemas.user_schema import UserCreate


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, user: UserCreate) -> User:
    """Create a user with a bcrypt-hashed password."""
    db_user = User(
        email=user.email,
        username=user.username,
        hashed_password=get_password_hash(user.password),
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

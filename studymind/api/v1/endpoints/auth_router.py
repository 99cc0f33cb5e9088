import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from studymind.api.v1.dependencies import get_current_user, get_db, get_workspace_registry
from studymind.core import security
from studymind.core.config import settings
from studymind.crud import user_crud
from studymind.models.user.user_model import User
from studymind.schemas import user_schema
from studymind.services.review_workspace import ReviewWorkspaceRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=user_schema.User, status_code=status.HTTP_201_CREATED)
def register(user_in: user_schema.UserCreate, db: Session = Depends(get_db)):
    if user_crud.get_user_by_email(db, email=user_in.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    if user_crud.get_user_by_username(db, username=user_in.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    user = user_crud.create_user(db=db, user=user_in)
    logger.info("User %s registered", user.id)
    return user


@router.post("/token", response_model=user_schema.Token)
def login_for_access_token(
    response: Response,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    user = user_crud.get_user_by_username(db, username=form_data.username)
    if not user or not security.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Incorrect username or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="inactive_user")

    access_token = security.create_access_token(subject=str(user.id))
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
        path="/",
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    registry: ReviewWorkspaceRegistry = Depends(get_workspace_registry),
) -> JSONResponse:
    # The in-memory review state belongs to the signed-in user only.
    registry.discard(current_user.id)
    response = JSONResponse({"message": "Logout successful"})
    response.delete_cookie(
        key="access_token",
        path="/",
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
    )
    return response


@router.get("/me", response_model=user_schema.User)
def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user

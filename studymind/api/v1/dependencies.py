import logging
import re
from urllib.parse import unquote

from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from studymind.core import security
from studymind.core.ai_gateway import AIGateway
from studymind.db import session as db_session
from studymind.models.user.user_model import User
from studymind.services.review_repository import SessionFactory
from studymind.services.review_workspace import ReviewWorkspace, ReviewWorkspaceRegistry

log = logging.getLogger(__name__)


def get_session_factory() -> SessionFactory:
    """Factory used by the review workspace to open its own short-lived sessions."""
    return db_session.SessionLocal


def get_db(session_factory: SessionFactory = Depends(get_session_factory)) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _normalize_token_value(raw_token: str | None) -> str | None:
    """Return a clean JWT string extracted from a cookie or header value.

    Browsers can percent-encode cookie values (``Bearer%20…``) and some
    frontends send quoted strings; ``Bearer`` prefixes are accepted in any case.
    """

    if raw_token is None:
        return None

    token = raw_token.strip().strip('"').strip("'")
    if not token:
        return None

    token = unquote(token)

    match = re.match(r"^(bearer|token)[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(2)

    token = token.strip()
    return token or None


def _decode_user_from_token(token: str | None, db: Session) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    token = _normalize_token_value(token)
    if not token:
        log.warning("Authentication failed: no token supplied.")
        raise credentials_exception

    try:
        payload = security.decode_access_token(token)
        user_id_str = payload.get("sub")
        if user_id_str is None:
            log.warning("Authentication failed: token has no 'sub' claim.")
            raise credentials_exception
        user_id = int(user_id_str)
    except ExpiredSignatureError:
        log.warning("Authentication failed: token expired.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token_expired")
    except (JWTError, ValueError, TypeError):
        log.warning("Authentication failed: malformed token.")
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        log.warning("Authentication failed: user %s not found.", user_id)
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="inactive_user")

    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token_sources = (
        request.cookies.get("access_token"),
        request.headers.get("Authorization"),
    )

    last_unauthorized_error: HTTPException | None = None

    for candidate in token_sources:
        token = _normalize_token_value(candidate)
        if not token:
            continue

        try:
            return _decode_user_from_token(token, db)
        except HTTPException as exc:
            if exc.status_code != status.HTTP_401_UNAUTHORIZED:
                raise
            last_unauthorized_error = exc

    if last_unauthorized_error is not None:
        raise last_unauthorized_error

    return _decode_user_from_token(None, db)


def get_ai_gateway(request: Request) -> AIGateway:
    gateway = getattr(request.app.state, "ai_gateway", None)
    if gateway is None:
        gateway = AIGateway.from_settings()
        request.app.state.ai_gateway = gateway
    return gateway


def get_workspace_registry(
    request: Request,
    gateway: AIGateway = Depends(get_ai_gateway),
) -> ReviewWorkspaceRegistry:
    registry = getattr(request.app.state, "review_workspaces", None)
    if registry is None:
        registry = ReviewWorkspaceRegistry(gateway)
        request.app.state.review_workspaces = registry
    return registry


def get_review_workspace(
    current_user: User = Depends(get_current_user),
    registry: ReviewWorkspaceRegistry = Depends(get_workspace_registry),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> ReviewWorkspace:
    return registry.get_or_create(current_user.id, session_factory)

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studymind.api.v1.api import api_router
from studymind.core.ai_gateway import AIGateway
from studymind.core.config import settings
from studymind.db import session as db_session
from studymind.db.base import Base
from studymind.services.review_workspace import ReviewWorkspaceRegistry

# --- Logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="StudyMind API",
    openapi_url="/api/v1/openapi.json",
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


cors_origins = sorted({origin for origin in map(_sanitize_origin, settings.BACKEND_CORS_ORIGINS) if origin})
logger.info("CORS origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup():
    logger.info("Checking database tables...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("Database tables are ready.")

    gateway = AIGateway.from_settings()
    app.state.ai_gateway = gateway
    app.state.review_workspaces = ReviewWorkspaceRegistry(gateway)
    if settings.READ_ONLY_DEMO:
        logger.info("Read-only demo mode is enabled.")


@app.on_event("shutdown")
def shutdown():
    registry = getattr(app.state, "review_workspaces", None)
    if registry is not None:
        registry.clear()


@app.get("/")
def read_root():
    return {"message": "Welcome to the StudyMind API!"}

from fastapi import APIRouter
from .endpoints import (
    auth_router,
    history_router,
    note_router,
    review_router,
)

api_router = APIRouter()

api_router.include_router(auth_router.router, prefix="/auth", tags=["Auth"])
api_router.include_router(note_router.router, prefix="/notes", tags=["Notes"])
api_router.include_router(review_router.router, prefix="/review", tags=["Review"])
api_router.include_router(history_router.router, prefix="/history", tags=["History"])

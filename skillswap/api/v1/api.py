from fastapi import APIRouter
from .endpoints import admin, auth, swaps, users

router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
router.include_router(auth.router, prefix="/auth")
router.include_router(users.router, prefix="/users")
router.include_router(swaps.router, prefix="/swaps")
router.include_router(admin.router, prefix="/admin")

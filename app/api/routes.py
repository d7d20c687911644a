from fastapi import APIRouter

from app.api.admin import router as admin_router
from app.api.health import router as health_router
from app.api.patients import router as patients_router
from app.api.vitals import router as vitals_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(patients_router, prefix="/v1", tags=["patients"])
router.include_router(vitals_router, prefix="/v1", tags=["vitals"])
router.include_router(admin_router, prefix="/admin", tags=["admin"])

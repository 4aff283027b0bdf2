from fastapi import APIRouter

from momente.api.endpoints.events import router as events_router
from momente.api.endpoints.sync import router as sync_router

router = APIRouter(prefix="/api")
router.include_router(events_router)
router.include_router(sync_router)

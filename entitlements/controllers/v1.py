from fastapi import APIRouter

from . import access, admin, billing, subscription

router = APIRouter(prefix="/v1")
router.include_router(access.router)
router.include_router(subscription.router)
router.include_router(billing.router)
router.include_router(admin.router)

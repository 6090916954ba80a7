from fastapi import APIRouter
from netaudit.api.v1 import audit

router = APIRouter()
router.include_router(audit.router,         prefix="/audit",          tags=["audit"])

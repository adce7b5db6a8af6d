"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from anonauth.api.v1 import authorize

router = APIRouter()

router.include_router(authorize.router, prefix="/connect", tags=["connect"])

"""API v1 router composition."""

from fastapi import APIRouter

from audit_trail.api.v1.endpoints import audits

api_router: APIRouter = APIRouter()
api_router.include_router(audits.router, prefix="/audits", tags=["audits"])

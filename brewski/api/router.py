from fastapi import APIRouter

from brewski.api.routes import devices

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(devices.router, tags=["devices"])

from fastapi import APIRouter

from tripsmith.api.v1.endpoints import route

api_router = APIRouter()

api_router.include_router(route.router, prefix="/routes", tags=["routes"])

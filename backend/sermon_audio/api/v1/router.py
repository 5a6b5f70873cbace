"""Main API router aggregator."""

from fastapi import APIRouter

from sermon_audio.api.v1 import announcements

api_router = APIRouter()

api_router.include_router(announcements.router, prefix="/announcements", tags=["announcements"])

from fastapi import APIRouter
from trackmytime.routers import calendar, time_off, users

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(time_off.router, tags=["Time Off"])
api_router.include_router(calendar.router, tags=["Calendar"])
api_router.include_router(users.router, tags=["Users"])

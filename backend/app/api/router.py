from fastapi import APIRouter

from app.api.holidays import holidays_router
from app.api.leave import leave_router
from app.api.notifications import notifications_router

api_router = APIRouter()
api_router.include_router(leave_router)
api_router.include_router(holidays_router)
api_router.include_router(notifications_router)

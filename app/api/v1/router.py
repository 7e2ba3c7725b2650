"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import auth, bookings, customers, developers, realtime

api_router = APIRouter()

# Authentication
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Profiles
api_router.include_router(developers.router, prefix="/developers", tags=["Developers"])
api_router.include_router(customers.router, prefix="/customers", tags=["Customers"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Realtime
api_router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])

from fastapi import APIRouter

from .endpoints import events, registry, tickets

api_router = APIRouter()
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
api_router.include_router(registry.router, prefix="/registry", tags=["registry"])

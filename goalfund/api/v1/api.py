from fastapi import APIRouter

from goalfund.api.v1.routes import settings, goals, transactions, intents

api_router = APIRouter()

api_router.include_router(settings.router, tags=["settings"])
api_router.include_router(goals.router, tags=["goals"])
api_router.include_router(transactions.router, tags=["transactions"])
api_router.include_router(intents.router, tags=["intents"])

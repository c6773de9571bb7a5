"""
Main API Router
"""
from fastapi import APIRouter

from portfolio_sync.api.endpoints import calendar, chat, portfolio_sync, sheets

api_router = APIRouter()

api_router.include_router(portfolio_sync.router, tags=["drive"])
api_router.include_router(sheets.router, tags=["sheets"])
api_router.include_router(chat.router, tags=["chat"])
api_router.include_router(calendar.router, tags=["calendar"])

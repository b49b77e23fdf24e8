"""API routes."""

from fastapi import APIRouter

from gastro.api.routes import dishes, items, kitchen, orders, reports, sessions, stock, tables

api_router = APIRouter()

api_router.include_router(items.router, prefix="/items", tags=["inventory"])
api_router.include_router(dishes.router, prefix="/dishes", tags=["inventory", "menu"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders", "pos"])
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])

from fastapi import APIRouter
from fixcnchar.api.routes.rewrite import router as rewrite_router
from fixcnchar.api.routes.rules import router as rules_router
from fixcnchar.api.routes.websocket import router as websocket_router

api_router = APIRouter()
api_router.include_router(rewrite_router)
api_router.include_router(rules_router)
api_router.include_router(websocket_router)

__all__ = ['api_router']

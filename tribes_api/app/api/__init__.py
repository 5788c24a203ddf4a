from fastapi import APIRouter

from tribes_api.app.api.routes import channels, features, health, tribes

api_router = APIRouter()

api_router.include_router(tribes.router)
api_router.include_router(channels.router)
api_router.include_router(features.router)
api_router.include_router(health.router)

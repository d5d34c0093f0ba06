from fastapi import APIRouter

from .endpoints.health import router as health_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "IntroBot is running"}


api_router.include_router(health_router)

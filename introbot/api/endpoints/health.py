from fastapi import APIRouter, Request

from introbot.services.profile_store import profile_store

router = APIRouter(tags=["health"])


@router.get("/health", summary="Simple readiness check")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/stats", summary="Profile count and bot connection state")
async def stats(request: Request) -> dict:
    bot = getattr(request.app.state, "bot", None)
    connected = bot is not None and bot.is_ready() and not bot.is_closed()
    return {
        "profiles": await profile_store.count(),
        "bot": "connected" if connected else "disconnected",
    }

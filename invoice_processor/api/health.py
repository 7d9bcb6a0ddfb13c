from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()

@router.get("/health", response_class=PlainTextResponse)
async def health():
    """Liveness probe. Never checks dependencies, answers even after failed cycles."""
    return "OK"

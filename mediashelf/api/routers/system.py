from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mediashelf.db.session import AsyncSessionLocal

router = APIRouter(tags=["system"])


@router.get("/health")
async def health():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy"}


@router.get("/ready")
async def ready():
    """Readiness check that verifies database connectivity."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except (SQLAlchemyError, OSError) as e:
        return {"status": "not_ready", "database": "disconnected", "error": str(e)}

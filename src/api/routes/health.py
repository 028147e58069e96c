import asyncio

import pika
import pika.exceptions
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.config import settings
from src.infrastructure.database.connection import get_session_factory

router = APIRouter(tags=["health"])


def _check_rabbitmq() -> str:
    try:
        connection = pika.BlockingConnection(pika.URLParameters(settings.rabbitmq_url))
        connection.close()
    except (pika.exceptions.AMQPError, OSError) as exc:
        return f"error: {exc}"
    return "connected"


async def collect_health() -> dict[str, str]:
    db_status = "connected"
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        db_status = f"error: {exc}"

    rabbitmq_status = await asyncio.get_running_loop().run_in_executor(None, _check_rabbitmq)
    ai_provider_status = "configured" if settings.gemini_api_key else "missing_api_key"

    healthy = db_status == "connected" and rabbitmq_status == "connected" and settings.gemini_api_key
    return {
        "status": "healthy" if healthy else "degraded",
        "database": db_status,
        "rabbitmq": rabbitmq_status,
        "ai_provider": ai_provider_status,
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness + dependency health check."""
    return await collect_health()

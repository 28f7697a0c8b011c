"""Main FastAPI application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager
import socketio

from app.core.logging import setup_logging
from app.core.dependencies import get_media_stream_manager, get_notification_gateway
from app.db.database import init_db
from app.api import ai, calls, health, suggestions
from app.api.webhooks import media, voice, whatsapp


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    await get_notification_gateway().attach_pubsub()
    yield
    # Shutdown: let in-flight suggestions finish
    await get_media_stream_manager().drain()


app = FastAPI(
    title="Sales Copilot",
    description="Real-time AI suggestions for sales calls and WhatsApp chats",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(ai.router, tags=["ai"])
app.include_router(calls.router, tags=["calls"])
app.include_router(suggestions.router, tags=["suggestions"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(whatsapp.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(media.router, tags=["media"])


@app.get("/")
async def root():
    return {"message": "Sales Copilot API", "version": "0.1.0"}


# Socket.IO (namespace /ws) in front of the FastAPI app
asgi_app = socketio.ASGIApp(get_notification_gateway().server, other_asgi_app=app)

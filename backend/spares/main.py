"""
FastAPI app entrypoint.

Primary: staggered spare-request notifications (processor runs in the background scheduler).
"""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from spares.api.routes import config as config_routes
from spares.api.routes import spares
from spares.config import settings
from spares.db.session import SessionLocal
from spares.scheduler.notification_job import NotificationWorker
from spares.services.clock import Clock
from spares.services.notification_processor import NotificationProcessor
from spares.services.transport import DeliveryTransport

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    clock = Clock(SessionLocal)
    transport = DeliveryTransport(settings)
    processor = NotificationProcessor(
        SessionLocal,
        clock,
        transport,
        claim_timeout=timedelta(seconds=settings.notification_claim_timeout_seconds),
    )
    worker = NotificationWorker(processor, interval_seconds=settings.notification_tick_seconds)
    app.state.clock = clock
    app.state.worker = worker
    if settings.notification_processor_enabled:
        worker.start()
    else:
        logger.info("Notification processor disabled (NOTIFICATION_PROCESSOR_ENABLED=false)")
    yield
    # Let an in-flight tick finish its claim before exiting
    worker.stop(wait=True)
    transport.close()


app = FastAPI(title="Curling Spares", version="0.1.0", lifespan=lifespan)

# CORS: the club frontend (FRONTEND_URL) + optional CORS_ORIGINS (comma-separated)
_cors_origins = [settings.frontend_url.rstrip("/")]
_cors_origins.extend(o.strip().rstrip("/") for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(spares.router, tags=["spares"])
app.include_router(config_routes.router, tags=["config"])


@app.get("/health")
def health() -> dict[str, str]:
    worker = getattr(app.state, "worker", None)
    return {
        "status": "ok",
        "notification_processor": "running" if worker is not None and worker.running else "stopped",
    }

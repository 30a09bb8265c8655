from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from epg_grabber import __version__
from epg_grabber.config import settings, setup_logging
from epg_grabber.services.scheduler_service import grab_scheduler

from epg_grabber.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting EPG Grabber service...")

    try:
        settings.log_summary()

        logger.info("Starting scheduler...")
        grab_scheduler.start()
        logger.info("EPG Grabber service started successfully")
    except Exception as e:
        logger.error(f"Failed to start EPG Grabber service: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down EPG Grabber service...")

    try:
        grab_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    logger.info("EPG Grabber service stopped")


app = FastAPI(
    title="EPG Grabber",
    version=__version__,
    lifespan=lifespan
)

app.include_router(main_router)

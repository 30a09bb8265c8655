from pathlib import Path

import aiofiles
from fastapi import APIRouter, HTTPException, Response
import logging

from epg_grabber import __version__
from epg_grabber.config import settings
from epg_grabber.errors import ConfigurationError, GrabberError
from epg_grabber.schemas import ErrorDetail, GrabSummary
from epg_grabber.services import grab_service, grab_scheduler


logger = logging.getLogger(__name__)

main_router = APIRouter()

@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = grab_scheduler.get_next_run_time()

    return {
        "service": "EPG Grabber",
        "version": __version__,
        "next_scheduled_grab": next_run.isoformat() if next_run else None,
        "endpoints": {
            "grab": "/grab - Manually trigger EPG grab (POST)",
            "xmltv": "/xmltv - Last grabbed listings as XMLTV",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    next_run = grab_scheduler.get_next_run_time()
    last = grab_service.last_summary
    return {
        "status": "ok",
        "scheduler_running": grab_scheduler.scheduler.running if grab_scheduler.scheduler else False,
        "grab_running": grab_service.is_running(),
        "last_grab": last.timestamp if last else None,
        "next_grab": next_run.isoformat() if next_run else None
    }


@main_router.post("/grab", response_model=GrabSummary)
async def trigger_grab() -> GrabSummary:
    """
    Manually trigger an EPG grab

    Fetches missing days, updates the cache and renders XMLTV
    """
    logger.info("Manual EPG grab triggered via API")
    try:
        return await grab_service.grab()
    except ConfigurationError as e:
        logger.error(f"Manual grab misconfigured: {e}")
        raise HTTPException(status_code=500, detail=ErrorDetail(code="CONFIGURATION_ERROR", message=str(e)).model_dump())
    except GrabberError as e:
        logger.error(f"Manual grab failed: {e}")
        raise HTTPException(status_code=500, detail=ErrorDetail(code="FETCH_FAILED", message=str(e)).model_dump())


@main_router.get("/xmltv")
async def get_xmltv() -> Response:
    """Return the XMLTV document produced by the last successful grab"""
    document = grab_service.last_document
    if document is None and settings.output_path and Path(settings.output_path).exists():
        async with aiofiles.open(settings.output_path, 'rb') as f:
            document = await f.read()
    if document is None:
        raise HTTPException(status_code=404, detail="No listings grabbed yet")
    return Response(content=document, media_type="application/xml")

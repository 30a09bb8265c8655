"""
Services package for the EPG grabber

This package contains all business logic and service layer components.
"""
from epg_grabber.services.grab_service import grab_service, GrabPipeline
from epg_grabber.services.range_reconciler import plan
from epg_grabber.services.schedule_assembler import ScheduleAssembler
from epg_grabber.services.schedule_fetcher import ScheduleFetcher
from epg_grabber.services.scheduler_service import grab_scheduler
from epg_grabber.services.xmltv_renderer import render_xmltv

__all__ = [
    'grab_service',
    'GrabPipeline',
    'plan',
    'ScheduleAssembler',
    'ScheduleFetcher',
    'grab_scheduler',
    'render_xmltv',
]

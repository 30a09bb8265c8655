"""
EPG Grabber

Fetches TV listings day by day from the provider API, keeps an incremental
day-range cache and renders XMLTV.
"""

__version__ = "0.1.0"

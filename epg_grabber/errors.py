"""
Error hierarchy for the grabber.

Fetch failures and configuration problems abort a run. Cache problems never
raise; they are logged and treated as a cache miss.
"""


class GrabberError(Exception):
    """Base class for all grabber errors"""
    pass


class ConfigurationError(GrabberError):
    """Raised when required configuration (credentials, channels) is missing"""
    pass


class ScheduleFetchError(GrabberError):
    """Raised when a day fetch fails; fatal to the current run"""

    def __init__(self, message: str, day=None):
        super().__init__(message)
        self.day = day

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from epg_grabber.utils.timezone import parse_xmltv_time, DateFormatError


class CachedChannel(BaseModel):
    """Channel display metadata stored in the cache file"""
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(..., alias="display-name", description="Human readable channel name")


class CachedProgramme(BaseModel):
    """Programme entry stored in the cache file"""
    channel: str = Field(..., min_length=1, description="Channel id this programme belongs to")
    title: str = Field(..., description="Programme title")
    desc: str = Field("", description="Programme description")
    start: str = Field(..., description="XMLTV start time, e.g. '20251009055000 +0200'")
    stop: str = Field(..., description="XMLTV stop time")

    @field_validator('start', 'stop')
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Validate XMLTV datetime format using centralized parser"""
        try:
            parse_xmltv_time(v)
            return v
        except DateFormatError:
            raise ValueError(f"Invalid datetime format: {v}. Must be 'YYYYMMDDHHMMSS +ZZZZ'")

    @model_validator(mode='after')
    def validate_time_order(self):
        """Validate that the programme starts before it stops"""
        if parse_xmltv_time(self.start) >= parse_xmltv_time(self.stop):
            raise ValueError(f"start ({self.start}) must be before stop ({self.stop})")
        return self


class CacheRecord(BaseModel):
    """Persisted cache file: one contiguous interval plus its listings"""
    start: int = Field(..., description="Epoch seconds of the inclusive interval start")
    end: int = Field(..., description="Epoch seconds of the exclusive interval end")
    created: int = Field(..., description="Epoch seconds of the last full rewrite")
    channels: dict[str, CachedChannel]
    programme: dict[str, CachedProgramme]

    @model_validator(mode='after')
    def validate_interval(self):
        """Validate that the interval is not reversed"""
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must not be after end ({self.end})")
        return self


class GrabSummary(BaseModel):
    """Statistics of a single grab run"""
    status: str = Field("success", description="'success' or 'skipped'")
    timestamp: str = Field(..., description="ISO8601 UTC completion time")
    case: str | None = Field(None, description="How the cache related to the request")
    requested_start: str | None = None
    requested_days: int = 0
    days_planned: int = 0
    days_fetched: int = 0
    stopped_at: str | None = Field(None, description="Day that returned no new programmes")
    programmes_added: int = 0
    channels: int = 0
    programmes: int = Field(0, description="Programmes in the rendered output")
    interval_start: str | None = None
    interval_end: str | None = None
    cache_saved: bool = False
    output_path: str | None = None
    message: str | None = None


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'FETCH_FAILED', 'CONFIGURATION_ERROR')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")

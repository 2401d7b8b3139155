from pydantic import BaseModel, Field


class ProgramItemResponse(BaseModel):
    """Single programme entry"""
    start: str = Field(..., description="Start time, HH:MM local time")
    end: str = Field(..., description="End time, HH:MM local time")
    title: str = Field(..., description="Programme title")


class EPGResponse(BaseModel):
    """EPG data for one channel on one day"""
    channel_name: str = Field(..., description="Channel display name as requested")
    date: str = Field(..., description="Requested date, YYYY-MM-DD")
    epg_data: list[ProgramItemResponse] = Field(..., description="Programmes in feed order")


class ErrorResponse(BaseModel):
    """Query error, returned with status 200"""
    error: str = Field(..., description="Human-readable error message")

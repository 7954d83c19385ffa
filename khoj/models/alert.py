# khoj/models/alert.py
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AlertStatus = Literal["active", "resolved", "archived"]
ALERT_STATUSES = ("active", "resolved", "archived")


class GeoPoint(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class MediaItem(BaseModel):
    media_url: str
    media_type: Literal["image", "video"] = "image"
    is_sensitive: bool = False


# Payload coming FROM the web client
class AlertIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    upazila: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    contact_info: str = ""
    media: List[MediaItem] = Field(default_factory=list)
    geo: Optional[GeoPoint] = None


class AlertStatusUpdate(BaseModel):
    # validated by the route so the error message matches the other 400s
    status: Optional[str] = None


class AlertDetailsUpdate(BaseModel):
    """Owner edit; only the fields sent are changed."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    district: Optional[str] = Field(None, min_length=1)
    upazila: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    contact_info: Optional[str] = None
    media: Optional[List[MediaItem]] = None
    geo: Optional[GeoPoint] = None

# khoj/models/report.py
from typing import List, Optional

from pydantic import BaseModel, Field

from khoj.models.alert import GeoPoint


class ReportMedia(BaseModel):
    media_url: str
    media_type: str = "image"
    public_id: Optional[str] = None


class ReportIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    upazila: str = Field(..., min_length=1)
    media: List[ReportMedia] = Field(default_factory=list)
    geo: List[GeoPoint] = Field(default_factory=list)


class ReportUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    district: Optional[str] = Field(None, min_length=1)
    upazila: Optional[str] = Field(None, min_length=1)

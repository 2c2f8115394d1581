from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime


class ClickBucket(BaseModel):
    timestamp: datetime
    clicks: int


class BrowserDeviceStat(BaseModel):
    browser: str
    device: str
    clicks: int


class ReferrerStat(BaseModel):
    referrer: str
    clicks: int


class LinkStats(BaseModel):
    """Response of ``GET /api/stats/{slug}``"""
    slug: str
    url: str
    created_at: datetime = Field(..., alias="createdAt")
    total_clicks: int = Field(..., alias="totalClicks")
    clicks_over_time: List[ClickBucket] = Field(..., alias="clicksOverTime")
    browser_device_stats: List[BrowserDeviceStat] = Field(..., alias="browserDeviceStats")
    top_referrers: List[ReferrerStat] = Field(..., alias="topReferrers")
    interval: str

    model_config = ConfigDict(populate_by_name=True)

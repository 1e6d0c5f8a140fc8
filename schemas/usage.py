# schemas/usage.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class QuotaStatus(BaseModel):
    allowed: bool
    limit: int
    used: int
    resets_on: Optional[datetime] = None  # AI 生成枠のみ（翌月1日 00:00 UTC）


class UsageDetail(BaseModel):
    used: int
    limit: int
    remaining: int
    allowed: bool
    display: str
    remaining_display: str
    resets_on: Optional[datetime] = None


class UsageSummary(BaseModel):
    month_year: str
    ai: UsageDetail
    plants: UsageDetail

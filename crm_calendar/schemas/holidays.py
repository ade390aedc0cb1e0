"""Schemas for public holiday lookups."""

from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel, Field


class FederalHoliday(BaseModel):
    date: str = Field(..., description="Calendar date, YYYY-MM-DD.")
    name: str
    type: Literal["federal"] = "federal"


class HolidaysResponse(BaseModel):
    holidays: List[FederalHoliday]
    by_date: Dict[str, List[str]]


__all__ = ["FederalHoliday", "HolidaysResponse"]

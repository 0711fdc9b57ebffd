from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Vessel:
    id: int
    name: str
    type: str
    company: str
    imo_number: Optional[str] = None
    flag: Optional[str] = None
    built_year: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class VesselInput:
    name: str
    type: str
    company: str
    imo_number: Optional[str] = None
    flag: Optional[str] = None
    built_year: Optional[int] = None

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..work_details.model import WorkDetailsInput


@dataclass(frozen=True)
class ExportFile:
    filename: str
    mimetype: str
    data: bytes


@dataclass
class ImportResult:
    success: bool = False
    imported_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)
    message: str = ""


@dataclass(frozen=True)
class WorkDetailsImport:
    work_order_id: int
    details: WorkDetailsInput


@dataclass(frozen=True)
class ProgressImport:
    work_details_id: int
    progress_percentage: int
    report_date: date
    notes: Optional[str] = None

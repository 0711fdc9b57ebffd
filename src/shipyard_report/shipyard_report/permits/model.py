from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PermitToWork:
    id: int
    work_order_id: int
    storage_path: str
    original_name: Optional[str]
    is_uploaded: bool
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # joined
    shipyard_wo_number: Optional[str] = None
    vessel_name: Optional[str] = None
    uploader_name: Optional[str] = None

from __future__ import annotations

import re
from typing import Iterable, Optional

from werkzeug.utils import secure_filename

from ..core.constants import MAX_EVIDENCE_FILENAME, MAX_UPLOAD_BYTES
from ..core.exceptions import ValidationError
from .model import UploadedFile

PDF_TYPES = frozenset({"application/pdf"})
IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})

_EXTENSION_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def guess_content_type(file: UploadedFile) -> str:
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type and content_type != "application/octet-stream":
        return content_type
    return _EXTENSION_TYPES.get(file.extension, "application/octet-stream")


def sanitize_filename(name: str) -> str:
    cleaned = secure_filename(name or "")
    cleaned = re.sub(r"[^A-Za-z0-9.\-]", "_", cleaned)
    return cleaned or "file"


def _require_file(file: Optional[UploadedFile]) -> UploadedFile:
    if file is None or not file.filename or not file.data:
        raise ValidationError("No file provided")
    return file


def _check(file: UploadedFile, allowed: Iterable[str], message: str) -> None:
    if guess_content_type(file) not in allowed:
        raise ValidationError(message)
    if file.size > MAX_UPLOAD_BYTES:
        raise ValidationError("File size must be less than 10MB")


def validate_permit_file(file: Optional[UploadedFile]) -> UploadedFile:
    file = _require_file(file)
    _check(file, PDF_TYPES, "Only PDF files are allowed for work permits")
    return file


def validate_evidence_file(file: Optional[UploadedFile]) -> UploadedFile:
    file = _require_file(file)
    _check(file, IMAGE_TYPES, "Only image files are allowed (JPEG, PNG, GIF, WebP)")
    if len(file.filename) > MAX_EVIDENCE_FILENAME:
        raise ValidationError(f"Filename is too long (max {MAX_EVIDENCE_FILENAME} characters)")
    return file


def validate_bastp_file(file: Optional[UploadedFile]) -> UploadedFile:
    file = _require_file(file)
    _check(file, PDF_TYPES | IMAGE_TYPES, "Only PDF or image files are allowed for BASTP documents")
    return file


def file_kind(path: Optional[str]) -> str:
    """'pdf', 'image' or 'unknown', from the stored path's extension."""
    if not path or "." not in path:
        return "unknown"
    ext = path.rsplit(".", 1)[-1].lower()
    if ext == "pdf":
        return "pdf"
    if ext in {"jpg", "jpeg", "png", "gif", "webp"}:
        return "image"
    return "unknown"

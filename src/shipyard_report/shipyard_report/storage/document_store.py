"""Local object storage with named buckets and time-limited signed links.

Documents live under ``<root>/<bucket>/<path>``. Links handed to the browser
never expose the path directly: they carry a signed token which encodes the
bucket, the path and the link lifetime; the signing time comes from
itsdangerous.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable

from itsdangerous import BadSignature, SignatureExpired, TimestampSigner, URLSafeTimedSerializer

from ..core.constants import DEFAULT_URL_SECONDS, DOWNLOAD_URL_SECONDS, VIEW_URL_SECONDS
from ..core.exceptions import (
    DocumentNotFoundError,
    ExpiredDocumentLinkError,
    InvalidDocumentLinkError,
    StorageError,
)
from .model import StoredDocument

logger = logging.getLogger(__name__)


class _ClockSigner(TimestampSigner):
    def __init__(self, *args, clock: Callable[[], float] = time.time, **kwargs):
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


class LocalDocumentStore:
    def __init__(
        self,
        root: str | Path,
        *,
        secret_key: str,
        buckets: Iterable[str],
        clock: Callable[[], float] = time.time,
    ):
        self._root = Path(root)
        self._buckets = frozenset(buckets)
        self._serializer = URLSafeTimedSerializer(
            secret_key, salt="document-url", signer=_ClockSigner, signer_kwargs={"clock": clock}
        )

    def _resolve(self, bucket: str, path: str) -> Path:
        if bucket not in self._buckets:
            raise StorageError(f"Unknown storage bucket: {bucket}")
        rel = PurePosixPath(path or "")
        if not rel.parts or rel.is_absolute() or ".." in rel.parts:
            raise StorageError("Invalid storage path")
        return self._root / bucket / Path(*rel.parts)

    def upload(self, bucket: str, path: str, data: bytes) -> StoredDocument:
        target = self._resolve(bucket, path)
        if target.exists():
            raise StorageError("A file already exists at this path")
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Upload failed: {e}") from e
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return StoredDocument(bucket=bucket, path=path)

    def remove(self, bucket: str, path: str) -> bool:
        target = self._resolve(bucket, path)
        if not target.exists():
            return False
        target.unlink()
        logger.info("Removed %s/%s", bucket, path)
        return True

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def local_path(self, bucket: str, path: str) -> Path:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise DocumentNotFoundError("File not found")
        return target

    def create_signed_token(self, bucket: str, path: str, expires_in: int = DEFAULT_URL_SECONDS) -> str:
        if expires_in <= 0:
            raise StorageError("Signed URL lifetime must be positive")
        if not self.exists(bucket, path):
            raise DocumentNotFoundError("File not found")
        return self._serializer.dumps({"b": bucket, "p": path, "ttl": int(expires_in)})

    def resolve_signed_token(self, token: str) -> StoredDocument:
        # The lifetime is read before verification; loads() then checks it is signed.
        _, claimed = self._serializer.loads_unsafe(token)
        if not isinstance(claimed, dict):
            raise InvalidDocumentLinkError("Invalid document link")
        try:
            max_age = int(claimed.get("ttl", 0))
            payload = self._serializer.loads(token, max_age=max_age)
        except SignatureExpired:
            raise ExpiredDocumentLinkError("Document link has expired")
        except (BadSignature, TypeError, ValueError):
            raise InvalidDocumentLinkError("Invalid document link")
        return StoredDocument(bucket=payload["b"], path=payload["p"])


def lifetime_for(purpose: str) -> int:
    """Signed link lifetime for 'view' or 'download'."""
    if purpose == "download":
        return DOWNLOAD_URL_SECONDS
    if purpose == "view":
        return VIEW_URL_SECONDS
    return DEFAULT_URL_SECONDS

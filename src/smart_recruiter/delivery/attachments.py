from __future__ import annotations

import logging
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

STORAGE_BUCKET_MARKER = "/cvs/"


class AttachmentError(Exception):
    pass


class CVFileStore:
    """Resolves a CV reference to bytes.

    References are either http(s) URLs or paths relative to the storage
    directory. Public storage URLs containing ``/cvs/`` are mapped onto the
    local directory when the file exists there.
    """

    def __init__(self, root: Path, *, timeout_sec: int = 30, session: requests.Session | None = None):
        self.root = Path(root)
        self.timeout_sec = timeout_sec
        self.http = session or requests.Session()

    def fetch(self, file_ref: str) -> bytes:
        ref = (file_ref or "").strip()
        if not ref:
            raise AttachmentError("CV reference is empty")

        if ref.startswith(("http://", "https://")):
            local = self._local_mirror(ref)
            if local is not None:
                return local.read_bytes()
            return self._download(ref)

        path = self._resolve(ref)
        if not path.is_file():
            raise AttachmentError(f"CV file not found: {ref}")
        return path.read_bytes()

    def _resolve(self, ref: str) -> Path:
        root = self.root.resolve()
        path = (root / ref.lstrip("/")).resolve()
        if root != path and root not in path.parents:
            raise AttachmentError(f"CV reference escapes storage directory: {ref}")
        return path

    def _local_mirror(self, url: str) -> Path | None:
        if STORAGE_BUCKET_MARKER not in url:
            return None
        relative = url.split(STORAGE_BUCKET_MARKER, 1)[1]
        try:
            path = self._resolve(relative)
        except AttachmentError:
            return None
        return path if path.is_file() else None

    def _download(self, url: str) -> bytes:
        try:
            response = self.http.get(url, timeout=self.timeout_sec)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to download CV %s: %s", url, exc)
            raise AttachmentError(f"unable to download CV: {exc}") from exc
        return response.content

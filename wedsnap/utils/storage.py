"""Object storage: album photo binaries on local disk, addressed by public URL."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

STORAGE_ROUTE = "/storage"


class ObjectStore:
    """Bucket-style file store.

    Objects live under ``<root>/<bucket>/<path>`` and are published at
    ``<public_base_url>/storage/<bucket>/<path>``.
    """

    def __init__(self, root: Path, public_base_url: str, bucket: str = "photos"):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        (self.root / bucket).mkdir(parents=True, exist_ok=True)

    @property
    def url_prefix(self) -> str:
        return f"{self.public_base_url}{STORAGE_ROUTE}/{self.bucket}/"

    def _resolve(self, path: str) -> Path:
        bucket_dir = (self.root / self.bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise ValueError(f"Path escapes bucket: {path}")
        return target

    def upload(self, path: str, data: bytes) -> str:
        """Write an object and return its public URL. Raises OSError on failure."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.url_prefix}{path}"

    def delete(self, path: str) -> None:
        """Remove an object. Missing objects are not an error."""
        target = self._resolve(path)
        target.unlink(missing_ok=True)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def path_from_url(self, url: str | None) -> str | None:
        """Derive the object path from a public URL, or None if it isn't one of ours."""
        if not url or not url.startswith(self.url_prefix):
            return None
        path = url[len(self.url_prefix):].split("?", 1)[0]
        if not path or path.endswith("/"):
            return None
        return path

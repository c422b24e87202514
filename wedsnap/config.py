"""WedSnap Server Configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "WedSnap"
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "wedsnap" / "data"
    storage_dir: Path = Path.home() / "wedsnap" / "storage"

    # Database
    db_path: Path = Path.home() / "wedsnap" / "data" / "wedsnap.db"

    # Object storage
    public_base_url: str = "http://localhost:8080"
    storage_bucket: str = "photos"

    # Device bookkeeping (device id + per-album assignment)
    kv_file: Path = Path.home() / "wedsnap" / "data" / "devices.json"

    # JWT
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # Uploads
    max_upload_bytes: int = 25 * 1024 * 1024
    thumbnail_max_edge: int = 300

    # Slideshow
    slideshow_interval_ms: int = 5000

    model_config = {"env_prefix": "WEDSNAP_"}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.storage_dir, self.db_path.parent, self.kv_file.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate the JWT secret if not set, persist it so tokens survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)

        secrets_file.write_text(f"jwt_secret={self.jwt_secret}\n")


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()

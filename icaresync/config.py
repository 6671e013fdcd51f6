"""Download configuration with environment variable support."""

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from icaresync.domain.models import product_folder


def _default_max_workers() -> int:
    """Return a sensible default for download worker threads."""
    cpu_count = os.cpu_count() or 1
    return max(1, min(32, cpu_count))


class Settings(BaseSettings):
    """Download configuration loaded from environment variables.

    Loads from environment (ICARE_*), .env file, or defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="ICARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = "sftp.icare.univ-lille.fr"
    port: int = 22
    user: str = ""
    password: str = ""
    remote_root: str = "/SPACEBORNE/CALIOP"
    connect_retries: int = 5
    retry_delay: float = 5.0

    # Local data
    local_root: Path = Path("data")
    version: float = 4.51

    # Conversion
    convert: bool = True
    converter_command: str = "h4toh5"
    target_ext: str = ".h5"

    # Sync behaviour
    resync: bool = False
    update: bool = False
    resume: Literal["ask", "yes", "no", "later"] = "ask"
    clean: Literal["ask", "yes", "no"] = "ask"

    # Logging
    logfile: Path | None = Path("downloads.log")
    loglevel: str = "INFO"

    # Performance
    max_workers: int = Field(default_factory=_default_max_workers)

    @field_validator("loglevel", mode="before")
    @classmethod
    def normalize_loglevel(cls, v: str) -> str:
        """Upper-case the level name and reject unknown levels."""
        level = str(v).strip().upper()
        if level == "WARN":
            level = "WARNING"
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v}")
        return level

    @field_validator("logfile", mode="before")
    @classmethod
    def parse_null_logfile(cls, v: str | Path | None) -> str | Path | None:
        """Convert 'null' string to None."""
        if isinstance(v, str) and v.lower() in ("null", "none", ""):
            return None
        return v

    @field_validator("local_root", mode="after")
    @classmethod
    def create_dirs(cls, v: Path) -> Path:
        """Create the local root if it doesn't exist."""
        v.expanduser().mkdir(parents=True, exist_ok=True)
        return v.expanduser().resolve()

    def product_folder(self, product: str) -> str:
        """Return the folder name of `product` at the configured version."""
        return product_folder(product, self.version)

    def product_path(self, product: str) -> Path:
        """Return the local folder of `product`, which holds its inventory."""
        return self.local_root / self.product_folder(product)

"""Service configuration.

Values are read once at startup from the environment (a ``.env`` file in the
working directory is loaded first when present):

  PORT                - listening port (default: 3000)
  HOST                - bind address (default: 0.0.0.0)
  PROVIDER            - replicate or stability (default: inferred from credentials)
  REPLICATE_API_TOKEN - token for the hosted model runner
  REPLICATE_MODEL     - model slug (default: black-forest-labs/flux-dev)
  STABILITY_API_KEY   - key for the direct diffusion API
  STABILITY_ENGINE    - engine id (default: stable-diffusion-xl-1024-v1-0)
  UPLOAD_DIR          - transient upload folder (default: ./uploads)
  MAX_UPLOAD_BYTES    - upload ceiling in bytes (default: 10 MiB)
  UPSTREAM_TIMEOUT    - seconds before giving up on the provider (default: unset)
  LOG_LEVEL           - logging level (default: INFO)
  LOG_FILE            - optional rotating log file
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

PROVIDERS = ("replicate", "stability")
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 3000
    provider: str = "replicate"
    replicate_api_token: str = ""
    replicate_model: str = "black-forest-labs/flux-dev"
    stability_api_key: str = ""
    stability_engine: str = "stable-diffusion-xl-1024-v1-0"
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    upstream_timeout: Optional[float] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"PROVIDER must be one of {', '.join(PROVIDERS)}, got {self.provider!r}")
        if self.max_upload_bytes <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be positive")

    @property
    def provider_credential(self) -> str:
        if self.provider == "stability":
            return self.stability_api_key
        return self.replicate_api_token

    @property
    def credential_variable(self) -> str:
        return "STABILITY_API_KEY" if self.provider == "stability" else "REPLICATE_API_TOKEN"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a Config from ``environ`` (defaults to ``os.environ`` after loading .env)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(name: str, default: str = "") -> str:
            # set-but-empty counts as unset
            return (environ.get(name) or "").strip() or default

        replicate_token = get("REPLICATE_API_TOKEN")
        stability_key = get("STABILITY_API_KEY")
        provider = get("PROVIDER").lower()
        if not provider:
            provider = "stability" if stability_key and not replicate_token else "replicate"

        timeout = get("UPSTREAM_TIMEOUT")
        log_file = get("LOG_FILE")

        return cls(
            host=get("HOST", "0.0.0.0"),
            port=int(get("PORT", "3000")),
            provider=provider,
            replicate_api_token=replicate_token,
            replicate_model=get("REPLICATE_MODEL", cls.replicate_model),
            stability_api_key=stability_key,
            stability_engine=get("STABILITY_ENGINE", cls.stability_engine),
            upload_dir=Path(get("UPLOAD_DIR", "uploads")).expanduser().resolve(),
            max_upload_bytes=int(get("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
            upstream_timeout=float(timeout) if timeout else None,
            log_level=get("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )

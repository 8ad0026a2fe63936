import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class ApiConfig:
    mode: str  # "prod" | "dev" | "testnet"
    host: str
    port: int
    cors_origins: List[str]

    @property
    def docs_enabled(self) -> bool:
        return self.mode != "prod"


def _is_truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_cors_origins(raw: str | None, mode: str) -> List[str]:
    """Parse CORS origins with production-safe defaults.

    Policy:
      - unset/empty -> CORS disabled (fail-closed)
      - wildcard "*" is rejected in prod mode
      - in non-prod modes, "*" is allowed for convenience
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in FOUNDERZ_CORS_ORIGINS."
            )
        return ["*"]
    return origins


def load_api_config() -> ApiConfig:
    mode = os.getenv("FOUNDERZ_MODE", "prod").strip().lower()
    host = os.getenv("FOUNDERZ_API_HOST", "127.0.0.1")
    try:
        port = int(os.getenv("FOUNDERZ_API_PORT", "8080"))
    except ValueError:
        port = 8080
    return ApiConfig(
        mode=mode,
        host=host,
        port=port,
        cors_origins=parse_cors_origins(os.getenv("FOUNDERZ_CORS_ORIGINS"), mode),
    )


def log_requests_enabled() -> bool:
    raw = os.getenv("FOUNDERZ_LOG_REQUESTS")
    if raw is None:
        return True
    return _is_truthy(raw)

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Defaults for both plugins, loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Logging (stderr; -v and -d on the command line override this)
    log_level: str = "WARNING"

    # HTTP probe
    user_agent: str = "check_end2end"
    http_timeout: float = 30.0  # per-request cap when no -t is given

    # Certificate probe
    tls_default_port: int = 443
    tls_connect_timeout: float = 10.0
    ocsp_timeout: float = 10.0

    # Proxy defaults for check_certificates
    proxy_port: int = 8080
    proxy_scheme: str = "http"


settings = Settings()

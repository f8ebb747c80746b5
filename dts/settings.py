from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Target file / Prometheus
    config_path: str = os.getenv("DTS_CONFIG_PATH", "prometheus-local/prometheus.yaml")
    consume_interval_s: int = _env_int("DTS_CONSUME_INTERVAL_S", 60)
    scrape_interval: str = os.getenv("DTS_SCRAPE_INTERVAL", "60s")
    reload_url: str = os.getenv("DTS_RELOAD_URL", "http://localhost:9090/-/reload")
    reload_timeout_s: float = _env_float("DTS_RELOAD_TIMEOUT_S", 0.5)

    # Docker
    docker_timeout_s: float = _env_float("DTS_DOCKER_TIMEOUT_S", 0.5)
    docker_host_address: str = os.getenv("DTS_DOCKER_HOST_ADDRESS", "host.docker.internal")
    metrics_port: str = os.getenv("DTS_METRICS_PORT", "2112/tcp")
    opt_in_label: str = os.getenv("DTS_OPT_IN_LABEL", "scrape_target")
    service_label: str = os.getenv("DTS_SERVICE_LABEL", "com.docker.compose.service")
    stream_retry_s: float = _env_float("DTS_STREAM_RETRY_S", 1.0)

    # Journal
    db_path: str = os.getenv("DTS_DB_PATH", "dts.db")

    # Status API (optional)
    enable_api: bool = _env_bool("DTS_ENABLE_API", False)
    api_host: str = os.getenv("DTS_API_HOST", "127.0.0.1")
    api_port: int = _env_int("DTS_API_PORT", 8000)


settings = Settings()

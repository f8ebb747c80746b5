from __future__ import annotations

import os
import tempfile

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import db
from .settings import settings


class TargetStateError(Exception):
    """The persisted target file exists but cannot be read or parsed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class GlobalConfig(BaseModel):
    scrape_interval: str = "60s"


class StaticConfig(BaseModel):
    targets: list[str] = Field(default_factory=list)


class ScrapeConfig(BaseModel):
    job_name: str
    static_configs: list[StaticConfig] = Field(default_factory=list)


class PrometheusConfig(BaseModel):
    """The parts of prometheus.yaml this system owns."""

    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    scrape_configs: list[ScrapeConfig] = Field(default_factory=list)


def load_targets(path: str | None = None) -> dict[str, str]:
    """Read job -> address from the target file. A missing file is empty state."""
    path = path or settings.config_path
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise TargetStateError(path, f"{type(e).__name__}: {e}") from e

    if raw is None:
        return {}
    try:
        conf = PrometheusConfig.model_validate(raw)
    except ValidationError as e:
        raise TargetStateError(path, f"invalid target file: {e}") from e

    state: dict[str, str] = {}
    for sc in conf.scrape_configs:
        targets = [t for s in sc.static_configs for t in s.targets]
        if not targets:
            db.log_event("WARN", "Ignoring job without targets in target file", job=sc.job_name)
            continue
        state[sc.job_name] = targets[0]
    return state


def render(targets: dict[str, str], scrape_interval: str | None = None) -> PrometheusConfig:
    scrape_configs = [
        ScrapeConfig(job_name=job, static_configs=[StaticConfig(targets=[address])])
        for job, address in sorted(targets.items())
        if job and address
    ]
    return PrometheusConfig(
        global_=GlobalConfig(scrape_interval=scrape_interval or settings.scrape_interval),
        scrape_configs=scrape_configs,
    )


def publish_targets(targets: dict[str, str], path: str | None = None, scrape_interval: str | None = None) -> None:
    """Overwrite the target file with exactly `targets`.

    The document is written to a temporary sibling and renamed over the
    target, so readers never observe a partial file.
    """
    path = path or settings.config_path
    doc = render(targets, scrape_interval).model_dump(by_alias=True)

    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".targets-", suffix=".yaml", dir=parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(doc, f, default_flow_style=False, sort_keys=False)
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise

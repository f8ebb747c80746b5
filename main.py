from __future__ import annotations

from dataclasses import asdict
from threading import Thread

from fastapi import FastAPI, HTTPException, Query

from dts import db
from dts.api_models import CycleOut, HealthOut, TargetOut
from dts.consumer import Consumer
from dts.docker_ops import ContainerRuntime
from dts.eventlog import EventLog
from dts.producers import ProducerManager
from dts.settings import settings
from dts.targets import TargetStateError, load_targets


def create_app(consumer: Consumer) -> FastAPI:
    app = FastAPI(title="Docker Target Sync")

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(docker=consumer.runtime.available(), pending_events=len(consumer.event_log))

    @app.get("/targets", response_model=list[TargetOut])
    def targets() -> list[TargetOut]:
        try:
            state = load_targets(consumer.config_path)
        except TargetStateError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [TargetOut(job=job, address=address) for job, address in sorted(state.items())]

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000)) -> list[dict]:
        return db.latest_events(limit)

    @app.get("/cycles", response_model=list[CycleOut])
    def cycles(limit: int = Query(20, ge=1, le=500)) -> list[CycleOut]:
        return [CycleOut(**asdict(c)) for c in db.latest_cycles(limit)]

    @app.post("/reconcile", response_model=CycleOut | None)
    def reconcile() -> CycleOut | None:
        result = consumer.consume()
        if result is None:
            return None
        return CycleOut(**asdict(result))

    return app


def _serve_api(app: FastAPI) -> None:
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level="warning")


def run() -> None:
    """Run the pipeline. Blocks forever inside the event stream producer."""
    db.init_db()
    runtime = ContainerRuntime()
    el = EventLog()
    consumer = Consumer(runtime, el)
    consumer.start()

    if settings.enable_api:
        Thread(target=_serve_api, args=(create_app(consumer),), name="dts-api", daemon=True).start()
        db.log_event("INFO", f"Status API listening on {settings.api_host}:{settings.api_port}")

    db.log_event("INFO", f"Watching containers labeled {settings.opt_in_label}=true")
    ProducerManager.for_runtime(runtime).run(el)


if __name__ == "__main__":
    run()

"""
gamecore status app

Read-only view of the process runtime: scheduler task table, cache
statistics and registry contents. Game modules talk to the runtime
directly; this app only reports on it.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException

from config.settings import settings
from gamecore.runtime import get_runtime
from gamecore.schemas import HealthStatus, RegistryView, TaskList, TaskView

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format=settings.log_format or "%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gamecore.main")

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = settings.app_name


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = get_runtime()
    if settings.scheduler_autostart:
        runtime.start()
    yield
    runtime.stop()


app = FastAPI(
    title=APP_NAME,
    description="Cache / registry / scheduler runtime status",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthStatus)
def health_check():
    """Health check endpoint."""
    runtime = get_runtime()
    return HealthStatus(
        status="ok",
        side=runtime.side,
        scheduler_running=runtime.scheduler.running,
    )


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
def cache_stats() -> Dict[str, Any]:
    """Get cache statistics."""
    return get_runtime().caches.get_stats()


@app.get("/scheduler/tasks", response_model=TaskList)
def scheduler_tasks():
    """Scheduler task table."""
    scheduler = get_runtime().scheduler
    return TaskList(
        stats=scheduler.get_stats(),
        tasks=[TaskView(**t.to_dict()) for t in scheduler.tasks()],
    )


@app.get("/registries")
def registry_list() -> List[Dict[str, Any]]:
    """Statistics for every registry."""
    return [r.get_stats() for r in get_runtime().registries().values()]


@app.get("/registries/{name}", response_model=RegistryView)
def registry_detail(name: str):
    """Committed contents of one registry."""
    registry = get_runtime().registries().get(name)
    if registry is None:
        raise HTTPException(status_code=404, detail=f"Registry not found: {name}")
    state = registry.snapshot()
    return RegistryView(name=name, version=state.version, entries=state.to_dict())

"""
Pydantic schemas for the status endpoints
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class HealthStatus(BaseModel):
    """Health check response"""
    status: str
    side: str
    scheduler_running: bool


class TaskView(BaseModel):
    """One polling task"""
    name: str
    state: str
    enabled: bool
    interval: float
    next_run_at: float
    last_run_at: Optional[float] = None
    run_count: int
    consecutive_failures: int
    failure_count: int
    last_error: Optional[str] = None


class TaskList(BaseModel):
    """Scheduler task table with aggregate counters"""
    stats: Dict[str, Any]
    tasks: List[TaskView]


class RegistryView(BaseModel):
    """Committed contents of one registry"""
    name: str
    version: int
    entries: Dict[str, Any]

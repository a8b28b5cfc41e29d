from pydantic import BaseModel, Field, model_validator
from typing import Callable, Dict, List, Literal, Optional


class ProbeSpec(BaseModel):
    kind: Literal["http", "exec", "running"]
    url: Optional[str] = None  # http
    expected_status: int = 200  # http
    command: Optional[List[str]] = None  # exec, e.g. ["pg_isready", "-U", "postgres"]
    timeout: float = 5.0

    @model_validator(mode="after")
    def check_target(self):
        if self.kind == "http" and not self.url:
            raise ValueError("http checks require a url")
        if self.kind == "exec" and not self.command:
            raise ValueError("exec checks require a command")
        return self


class ServiceDefinition(BaseModel):
    name: str  # check name used in reports, e.g. "database"
    container_name: str
    probe: ProbeSpec
    log_tail: int = 20


class HealthCheck(BaseModel):
    """A named readiness predicate, built fresh for each start/status run."""

    name: str
    probe: Callable[[], bool]
    max_attempts: int = Field(default=30, ge=1)
    interval: float = Field(default=2.0, ge=0)
    diagnostic: Optional[Callable[[], str]] = None


class ProbeResult(BaseModel):
    name: str
    success: bool
    diagnostic: Optional[str] = None
    error: Optional[str] = None  # set only when the probe could not execute


class ReadinessReport(BaseModel):
    overall: bool
    rounds: int
    results: Dict[str, ProbeResult] = {}
    cancelled: bool = False

    @property
    def failing(self) -> List[str]:
        return [name for name, result in self.results.items() if not result.success]


class ContainerState(BaseModel):
    name: str
    exists: bool
    status: str  # docker status string, or "not_found"
    running: bool = False
    health: Optional[str] = None  # docker HEALTHCHECK status when defined
    id: Optional[str] = None

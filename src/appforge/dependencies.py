"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from appforge.services.generator import ApplicationGenerator
from appforge.services.orchestrator import EditOrchestrator
from appforge.storage.store import SqlAppStore


def get_store(request: Request) -> SqlAppStore:
    return request.app.state.store


def get_generator(request: Request) -> ApplicationGenerator:
    return request.app.state.generator


def get_orchestrator(request: Request) -> EditOrchestrator:
    return request.app.state.orchestrator


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


# Type aliases for dependency injection
Store = Annotated[SqlAppStore, Depends(get_store)]
Generator = Annotated[ApplicationGenerator, Depends(get_generator)]
Orchestrator = Annotated[EditOrchestrator, Depends(get_orchestrator)]
TraceId = Annotated[str, Depends(get_trace_id)]

"""Application create / edit / read / delete routes.

Create and edit respond with a server-sent event stream of progress events.
The pipeline runs as a background task: a client that disconnects does not
cancel it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from appforge.dependencies import Generator, Orchestrator, Store, TraceId
from appforge.errors.exceptions import AppForgeError, NotFoundError
from appforge.logging_config import bind_request_context
from appforge.models.application import (
    ApplicationSummary,
    CreateApplicationRequest,
    EditApplicationRequest,
    TableSchema,
)
from appforge.models.enums import ProgressStep
from appforge.services.progress import ProgressChannel, ProgressEvent

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Apps"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


async def _drive(pipeline: Awaitable, channel: ProgressChannel) -> None:
    try:
        await pipeline
    except AppForgeError as exc:
        logger.info("Pipeline ended with %s", exc.code)
        if not channel.finished:
            channel.publish(ProgressEvent(step=ProgressStep.ERROR, message=exc.message, data={"code": exc.code}))
    except Exception:
        logger.exception("Pipeline crashed")
        channel.publish(ProgressEvent(step=ProgressStep.ERROR, message="Internal error"))


async def _sse(events: AsyncIterator[ProgressEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield event.to_sse()


def _stream_pipeline(request: Request, channel: ProgressChannel, pipeline: Awaitable) -> StreamingResponse:
    tasks: set = request.app.state.pipeline_tasks
    task = asyncio.create_task(_drive(pipeline, channel))
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return StreamingResponse(_sse(channel.events()), media_type="text/event-stream", headers=_SSE_HEADERS)


@router.post("/apps")
async def create_app(body: CreateApplicationRequest, request: Request, generator: Generator):
    channel = ProgressChannel()
    return _stream_pipeline(
        request, channel, generator.create(body.description, title=body.title, progress=channel)
    )


@router.post("/apps/{app_id}/edit")
async def edit_app(
    app_id: str,
    body: EditApplicationRequest,
    request: Request,
    store: Store,
    orchestrator: Orchestrator,
    trace_id: TraceId,
):
    if await store.get_application(app_id) is None:
        raise NotFoundError("Application", app_id)
    bind_request_context(trace_id, app_id)

    channel = ProgressChannel()
    return _stream_pipeline(request, channel, orchestrator.edit(app_id, body.description, progress=channel))


@router.get("/apps")
async def list_apps(store: Store, limit: int = Query(100, ge=1, le=500)) -> list[dict]:
    records = await store.list_applications(limit)
    return [ApplicationSummary.model_validate(r, from_attributes=True).model_dump(mode="json") for r in records]


@router.get("/apps/{app_id}")
async def get_app(app_id: str, store: Store) -> dict:
    record = await store.get_application(app_id)
    if record is None:
        raise NotFoundError("Application", app_id)
    return record.model_dump(mode="json")


@router.get("/apps/{app_id}/schema")
async def get_app_schema(app_id: str, store: Store) -> list[dict]:
    if await store.get_application(app_id) is None:
        raise NotFoundError("Application", app_id)
    tables = await store.get_schema(app_id)
    return [
        TableSchema(table_name=t.name, columns=t.columns).model_dump(mode="json", exclude_none=True)
        for t in tables
    ]


@router.get("/apps/{app_id}/edit-requests")
async def list_edit_requests(app_id: str, store: Store) -> list[dict]:
    if await store.get_application(app_id) is None:
        raise NotFoundError("Application", app_id)
    records = await store.list_edit_requests(app_id)
    return [r.model_dump(mode="json", exclude_none=True) for r in records]


@router.delete("/apps/{app_id}", status_code=204)
async def delete_app(app_id: str, store: Store) -> None:
    if not await store.delete_application(app_id):
        raise NotFoundError("Application", app_id)

"""
FastAPI layer exposing the batch image-edit queue.

Endpoints:
 - GET /health
 - GET /credential, POST /credential
 - GET /queue, POST /queue, POST /queue/urls, DELETE /queue
 - DELETE /queue/{item_id}
 - PUT /queue/{item_id}/instruction
 - GET /queue/{item_id}/result
 - GET /instruction, PUT /instruction
 - POST /run, POST /run/cancel

Every handler is ``async def`` so queue mutations stay on the event loop
thread; blocking work (downloads, Pillow) is pushed to worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from urllib.parse import quote, urlparse

import requests
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, HttpUrl

from . import config
from .context import AppContext, QueueItemView
from .credentials import CredentialWatcher
from .downloads import encode_png, suggested_filename
from .errors import ImageDecodeError, ItemLockedError, ItemNotFoundError, QueueBusyError
from .models import SourceImage
from .processor import RunSummary

logger = logging.getLogger(__name__)


class CredentialRequest(BaseModel):
    apiKey: str


class CredentialResponse(BaseModel):
    usable: bool
    selectionRequested: bool
    lastRejection: Optional[str] = None


class InstructionBody(BaseModel):
    instruction: Optional[str] = None


class InstructionResponse(BaseModel):
    instruction: str


class EnqueueUrlsRequest(BaseModel):
    imageUrls: List[HttpUrl]


class QueueItemResponse(BaseModel):
    id: str
    filename: str
    status: str
    customInstruction: Optional[str] = None
    errorMessage: Optional[str] = None
    errorCategory: Optional[str] = None
    hasResult: bool = False


class QueueResponse(BaseModel):
    items: List[QueueItemResponse]
    running: bool
    cancelRequested: bool
    currentItemId: Optional[str] = None
    credentialUsable: bool
    eligibleCount: int


class RunSummaryResponse(BaseModel):
    outcome: str
    processed: int
    succeeded: int
    failed: int
    skipped: int
    discarded: int


class RunResponse(BaseModel):
    started: bool
    running: bool
    summary: Optional[RunSummaryResponse] = None


def _item_response(view: QueueItemView) -> QueueItemResponse:
    return QueueItemResponse(
        id=view.item_id,
        filename=view.filename,
        status=view.status,
        customInstruction=view.custom_instruction,
        errorMessage=view.error_message,
        errorCategory=view.error_category,
        hasResult=view.has_result,
    )


def _summary_response(summary: RunSummary) -> RunSummaryResponse:
    return RunSummaryResponse(
        outcome=summary.outcome.value,
        processed=summary.processed,
        succeeded=summary.succeeded,
        failed=summary.failed,
        skipped=summary.skipped,
        discarded=summary.discarded,
    )


def _download_image(url: str, timeout_seconds: int) -> requests.Response:
    resp = requests.get(url, timeout=(5, timeout_seconds))
    resp.raise_for_status()
    return resp


def _filename_from_url(url: str) -> str:
    name = urlparse(url).path.rsplit("/", 1)[-1]
    return name or "image"


def _content_disposition(filename: str) -> str:
    return f"attachment; filename*=UTF-8''{quote(filename)}"


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    settings = context.settings if context is not None else config.get_settings()
    ctx = context or AppContext(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        watcher: Optional[CredentialWatcher] = None
        if settings.credential_watch_interval_seconds > 0:
            watcher = CredentialWatcher(
                ctx.credentials,
                on_change=lambda usable: logger.info("Credential usable=%s", usable),
                interval_seconds=settings.credential_watch_interval_seconds,
            )
            watcher.start()
        try:
            yield
        finally:
            if watcher is not None:
                await watcher.stop()
            await ctx.processor.shutdown()

    app = FastAPI(title="Batch Image Edit Service", version="0.1.0", lifespan=lifespan)
    app.state.context = ctx

    def _ctx(request: Request) -> AppContext:
        return request.app.state.context

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/credential", response_model=CredentialResponse)
    async def get_credential(request: Request):
        credentials = _ctx(request).credentials
        return CredentialResponse(
            usable=credentials.has_usable_credential(),
            selectionRequested=credentials.selection_requested,
            lastRejection=credentials.last_rejection,
        )

    @app.post("/credential", response_model=CredentialResponse)
    async def select_credential(body: CredentialRequest, request: Request):
        credentials = _ctx(request).credentials
        try:
            credentials.select_api_key(body.apiKey)
        except ValueError as ve:
            raise HTTPException(status_code=400, detail=str(ve)) from ve
        return CredentialResponse(usable=True, selectionRequested=False)

    @app.get("/queue", response_model=QueueResponse)
    async def get_queue(request: Request):
        c = _ctx(request)
        return QueueResponse(
            items=[_item_response(view) for view in c.snapshot()],
            running=c.processor.is_running,
            cancelRequested=c.processor.cancel_requested,
            currentItemId=c.processor.current_item_id,
            credentialUsable=c.credentials.has_usable_credential(),
            eligibleCount=c.eligible_count(),
        )

    @app.post("/queue", response_model=List[QueueItemResponse], status_code=201)
    async def enqueue_files(request: Request, files: List[UploadFile] = File(...)):
        c = _ctx(request)
        sources = []
        for upload in files:
            data = await upload.read()
            if not data:
                raise HTTPException(status_code=400, detail=f"{upload.filename} is empty")
            if len(data) > c.settings.max_upload_bytes:
                raise HTTPException(status_code=400, detail=f"{upload.filename} is too large")
            content_type = upload.content_type or ""
            sources.append(
                SourceImage(
                    filename=upload.filename or "image",
                    data=data,
                    media_type=content_type if content_type.startswith("image/") else None,
                )
            )
        added = c.enqueue(sources)
        by_id = {view.item_id: view for view in c.snapshot()}
        return [_item_response(by_id[item.item_id]) for item in added]

    @app.post("/queue/urls", response_model=List[QueueItemResponse], status_code=201)
    async def enqueue_urls(body: EnqueueUrlsRequest, request: Request):
        c = _ctx(request)
        sources = []
        for image_url in body.imageUrls:
            url = str(image_url)
            try:
                resp = await asyncio.to_thread(_download_image, url, c.settings.request_timeout_seconds)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Failed to download image: %s", exc)
                raise HTTPException(status_code=400, detail=f"Could not download {url}") from exc
            if len(resp.content) > c.settings.max_upload_bytes:
                raise HTTPException(status_code=400, detail=f"{url} is too large")
            content_type = resp.headers.get("content-type", "").split(";", 1)[0].strip()
            sources.append(
                SourceImage(
                    filename=_filename_from_url(url),
                    data=resp.content,
                    media_type=content_type if content_type.startswith("image/") else None,
                )
            )
        added = c.enqueue(sources)
        by_id = {view.item_id: view for view in c.snapshot()}
        return [_item_response(by_id[item.item_id]) for item in added]

    @app.delete("/queue")
    async def clear_queue(request: Request):
        try:
            removed = _ctx(request).clear_all()
        except QueueBusyError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"removed": removed}

    @app.delete("/queue/{item_id}", status_code=204)
    async def remove_item(item_id: str, request: Request):
        try:
            _ctx(request).remove(item_id)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return Response(status_code=204)

    @app.put("/queue/{item_id}/instruction", response_model=QueueItemResponse)
    async def set_item_instruction(item_id: str, body: InstructionBody, request: Request):
        c = _ctx(request)
        try:
            c.set_custom_instruction(item_id, body.instruction)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ItemLockedError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        view = next(v for v in c.snapshot() if v.item_id == item_id)
        return _item_response(view)

    @app.get("/queue/{item_id}/result")
    async def download_result(item_id: str, request: Request):
        c = _ctx(request)
        item = c.store.get(item_id)
        if item is None or item.result is None:
            raise HTTPException(status_code=404, detail="No result for this item")
        try:
            png_bytes = await asyncio.to_thread(encode_png, item.result)
        except ImageDecodeError as exc:
            logger.exception("Result re-encoding failed for item id=%s", item_id)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        filename = suggested_filename(item.source.filename, c.settings.result_filename_prefix)
        return Response(
            content=png_bytes,
            media_type="image/png",
            headers={"Content-Disposition": _content_disposition(filename)},
        )

    @app.get("/instruction", response_model=InstructionResponse)
    async def get_global_instruction(request: Request):
        return InstructionResponse(instruction=_ctx(request).global_instruction)

    @app.put("/instruction", response_model=InstructionResponse)
    async def set_global_instruction(body: InstructionBody, request: Request):
        c = _ctx(request)
        c.set_global_instruction(body.instruction or "")
        return InstructionResponse(instruction=c.global_instruction)

    @app.post("/run", response_model=RunResponse, status_code=202)
    async def start_run(request: Request, wait: bool = False):
        c = _ctx(request)
        if not c.credentials.has_usable_credential():
            c.credentials.prompt_credential_selection()
            raise HTTPException(status_code=409, detail="No usable API key; select one first")
        already_running = c.processor.is_running
        task = c.start_run()
        summary = None
        if wait and task is not None:
            # a cancelled waiter must not cancel the run itself
            summary = _summary_response(await asyncio.shield(task))
        return RunResponse(
            started=not already_running,
            running=c.processor.is_running,
            summary=summary,
        )

    @app.post("/run/cancel")
    async def cancel_run(request: Request):
        return {"cancelled": _ctx(request).cancel_run()}

    return app


settings = config.get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

app = create_app()

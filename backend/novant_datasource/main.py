import asyncio
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from . import __version__, settings
from .context import CancelToken
from .schemas.models import (
    CheckHealthRequest,
    CheckHealthResult,
    PluginContext,
    PublishStreamResponse,
    QueryDataRequest,
    QueryDataResponse,
    StreamRequest,
    SubscribeStreamResponse,
)
from .services.datasource import NovantDatasource
from .services.novant_client import NovantClient
from .services.stream import STREAM_PATH, publish_stream, run_stream, subscribe_stream

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Novant Datasource API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _datasource(ctx: PluginContext) -> NovantDatasource:
    client = NovantClient(ctx.api_key or settings.NOVANT_API_KEY)
    return NovantDatasource(client, uid=ctx.datasourceUid)


async def _cancel_on_disconnect(request: Request, token: CancelToken) -> None:
    while not token.cancelled:
        if await request.is_disconnected():
            LOGGER.info("Client disconnected, cancelling pending queries")
            token.cancel()
            return
        await asyncio.sleep(0.5)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/health", response_model=CheckHealthResult)
def check_health(inp: CheckHealthRequest):
    ds = _datasource(inp.pluginContext)
    try:
        return ds.check_health()
    finally:
        ds.client.close()


@app.post("/api/query", response_model=QueryDataResponse)
async def query(inp: QueryDataRequest, request: Request):
    token = CancelToken(timeout=inp.timeoutSeconds)
    ds = _datasource(inp.pluginContext)
    token.on_cancel(ds.client.close)
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        return await run_in_threadpool(ds.query_data, inp.queries, token)
    finally:
        watcher.cancel()
        ds.client.close()


@app.post("/api/stream/subscribe", response_model=SubscribeStreamResponse)
def stream_subscribe(inp: StreamRequest):
    return subscribe_stream(inp.path)


@app.post("/api/stream/publish", response_model=PublishStreamResponse)
def stream_publish(inp: StreamRequest):
    return publish_stream(inp.path)


@app.get("/api/stream/{path}")
async def stream(path: str, interval: float = 1.0, limit: int = 0):
    if subscribe_stream(path).status != "OK":
        raise HTTPException(status_code=403, detail=f"Stream path not allowed: {path}")

    async def _lines():
        sent = 0
        frames = run_stream(STREAM_PATH, interval=interval)
        try:
            async for frame in frames:
                yield frame.model_dump_json() + "\n"
                sent += 1
                if limit and sent >= limit:
                    break
        finally:
            await frames.aclose()

    return StreamingResponse(_lines(), media_type="application/x-ndjson")


def run(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the backend via uvicorn."""
    import uvicorn

    settings.setup_logging()
    uvicorn.run(app, host=host, port=port, log_level=settings.NOVANT_LOG_LEVEL.lower())

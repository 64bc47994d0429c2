import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from storefront.errors import ErrorType
from storefront.exceptions import AppException, RPCError
from storefront.procedures import app_router
from storefront.rpc.context import Context
from storefront.rpc.panel import render_panel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rpc"])

# Status used when calls in one batch end differently
MULTI_STATUS = 207


async def get_context(request: Request) -> AsyncIterator[Context]:
    """One session per call, taken from the pool created at startup."""
    async with request.app.state.db.session() as session:
        yield Context(
            session=session,
            images=request.app.state.images,
            image_failure_policy=request.app.state.image_failure_policy,
        )


def parse_input(raw: str | bytes | None, path: str) -> Any:
    if raw is None or raw in ("", b""):
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise RPCError(ErrorType.BAD_REQUEST, "Input is not valid JSON", path)


async def call_procedure(path: str, kind: str, raw: Any, ctx: Context) -> dict:
    """Run one procedure and return its `{"result": {"data": ...}}` body."""
    proc = app_router.get(path, kind)
    try:
        result: BaseModel = await proc.call(ctx, raw)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Procedure {path} failed: {e}")
        raise RPCError(ErrorType.INTERNAL_ERROR, "Internal server error", path)

    return {"result": {"data": result.model_dump(mode="json", by_alias=True)}}


async def call_batch(paths: str, kind: str, raw: Any, ctx: Context) -> JSONResponse:
    """Run comma-separated procedures in order; call i takes input key "i".

    Each call succeeds or fails on its own, and the body is a list of
    results in call order.
    """
    if raw is not None and not isinstance(raw, dict):
        raise RPCError(ErrorType.BAD_REQUEST, "Batch input must be an object keyed by call index", paths)

    bodies = []
    statuses = set()
    for index, path in enumerate(paths.split(",")):
        call_input = (raw or {}).get(str(index))
        try:
            bodies.append(await call_procedure(path, kind, call_input, ctx))
            statuses.add(200)
        except RPCError as e:
            bodies.append(e.to_dict())
            statuses.add(e.status_code)

    status_code = statuses.pop() if len(statuses) == 1 else MULTI_STATUS
    return JSONResponse(status_code=status_code, content=bodies)


@router.get("/trpc/{path}")
async def rpc_query(
    path: str,
    input: str | None = None,
    batch: str | None = None,
    ctx: Context = Depends(get_context),
):
    """Run a query procedure; input is JSON in the `input` query parameter."""
    raw = parse_input(input, path)
    if batch in ("1", "true"):
        return await call_batch(path, "query", raw, ctx)
    return JSONResponse(await call_procedure(path, "query", raw, ctx))


@router.post("/trpc/{path}")
async def rpc_mutation(
    path: str,
    request: Request,
    batch: str | None = None,
    ctx: Context = Depends(get_context),
):
    """Run a mutation procedure; input is the JSON request body."""
    raw = parse_input(await request.body(), path)
    if batch in ("1", "true"):
        return await call_batch(path, "mutation", raw, ctx)
    return JSONResponse(await call_procedure(path, "mutation", raw, ctx))


@router.get("/panel", response_class=HTMLResponse)
async def panel():
    """Introspection page listing every procedure for manual testing."""
    try:
        return HTMLResponse(render_panel(app_router, "/trpc"))
    except Exception as e:
        logger.error(f"Error rendering RPC panel: {e}")
        return HTMLResponse("Failed to load RPC panel.", status_code=500)

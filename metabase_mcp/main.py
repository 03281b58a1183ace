import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from metabase_mcp.core.body_limit import BodySizeLimitMiddleware, BodyTooLarge, too_large_response
from metabase_mcp.core.config import get_settings
from metabase_mcp.core.logging_setup import ACCESS_LOGGER, access_line, configure_logging
from metabase_mcp.routers.tools import router as tools_router

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)
access_logger = logging.getLogger(ACCESS_LOGGER)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.metabase_configured:
        logger.warning(
            "METABASE_URL and/or METABASE_API_KEY not set. Metabase calls will fail until configured."
        )
    yield


app = FastAPI(title="Metabase MCP Server", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    access_logger.info(
        access_line(
            request.method,
            request.url.path,
            response.status_code,
            response.headers.get("content-length"),
            elapsed_ms,
        )
    )
    return response


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    logger.error("[%s] invalid request body: %s", request.url.path.lstrip("/"), exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": "invalid request body", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(BodyTooLarge)
async def body_too_large(request: Request, exc: BodyTooLarge):
    logger.error("[%s] request body too large", request.url.path.lstrip("/"))
    return too_large_response()


app.include_router(tools_router)


def run() -> None:
    uvicorn.run("metabase_mcp.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

# metabase_mcp/routers/tools.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from metabase_mcp.core.config import Settings, get_settings
from metabase_mcp.core.errors import AppError
from metabase_mcp.schemas.requests import QuestionCreateRequest, ResultsRequest, TranslationRequest
from metabase_mcp.schemas.responses import ErrorBody, HealthResponse, QuestionRef, ResultSet, TranslationResult
from metabase_mcp.services.nl_sql import translate_to_sql
from metabase_mcp.services.questions import create_question, get_question_results
from metabase_mcp.services.upstream import UpstreamClient, get_upstream_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tools"])

_ERRORS = {400: {"model": ErrorBody}, 500: {"model": ErrorBody}}


def _fail(endpoint: str, err: AppError) -> JSONResponse:
    logger.error("[%s] error: %s", endpoint, err.details if err.details is not None else err.message)
    return JSONResponse(status_code=err.status_code, content=err.body(endpoint))


def _crash(endpoint: str, err: Exception) -> JSONResponse:
    logger.exception("[%s] error: %s", endpoint, err)
    return JSONResponse(status_code=500, content={"error": f"{endpoint} failed", "details": str(err)})


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)):
    # liveness only, upstreams are not contacted
    return HealthResponse(ok=True, service=settings.service_name)


@router.post("/natural_language_to_sql", response_model=TranslationResult, responses=_ERRORS)
async def natural_language_to_sql(
    req: Optional[TranslationRequest] = None,
    settings: Settings = Depends(get_settings),
    client: UpstreamClient = Depends(get_upstream_client),
):
    try:
        return await translate_to_sql(req or TranslationRequest(), settings, client)
    except AppError as e:
        return _fail("natural_language_to_sql", e)
    except Exception as e:
        return _crash("natural_language_to_sql", e)


@router.post("/create_question", response_model=QuestionRef, responses=_ERRORS)
async def create_question_route(
    req: Optional[QuestionCreateRequest] = None,
    settings: Settings = Depends(get_settings),
    client: UpstreamClient = Depends(get_upstream_client),
):
    try:
        return await create_question(req or QuestionCreateRequest(), settings, client)
    except AppError as e:
        return _fail("create_question", e)
    except Exception as e:
        return _crash("create_question", e)


@router.post("/get_question_results", response_model=ResultSet, responses=_ERRORS)
async def get_question_results_route(
    req: Optional[ResultsRequest] = None,
    client: UpstreamClient = Depends(get_upstream_client),
):
    try:
        return await get_question_results(req or ResultsRequest(), client)
    except AppError as e:
        return _fail("get_question_results", e)
    except Exception as e:
        return _crash("get_question_results", e)

# metabase_mcp/services/questions.py
from __future__ import annotations

from typing import Any, Dict

from metabase_mcp.core.config import Settings
from metabase_mcp.core.errors import CreationFailed, ExecutionFailed, UpstreamError, ValidationError
from metabase_mcp.schemas.requests import QuestionCreateRequest, ResultsRequest
from metabase_mcp.schemas.responses import QuestionRef, ResultSet
from metabase_mcp.services.upstream import UpstreamClient
from metabase_mcp.utils.allowlist import is_database_allowed


def build_native_card(name: str, sql: str, database_id: Any) -> Dict[str, Any]:
    """Metabase card for a raw SQL question, shown as a table."""
    return {
        "name": name,
        "display": "table",
        "dataset_query": {
            "type": "native",
            "native": {"query": sql},
            "database": database_id,
        },
    }


def question_url(card: Dict[str, Any]) -> str:
    # public_uuid is only set when the card was shared publicly in Metabase
    if card.get("public_uuid"):
        return f"/public/question/{card['public_uuid']}"
    return f"/question/{card.get('id')}"


async def create_question(req: QuestionCreateRequest, settings: Settings, client: UpstreamClient) -> QuestionRef:
    if not req.name or not req.sql or not req.database_id:
        raise ValidationError("name, sql, database_id are required")

    if not is_database_allowed(req.database_id, settings.allowed_database_ids):
        raise ValidationError("database_id not allowed")

    try:
        card = await client.call_metabase("/api/card", "POST", build_native_card(req.name, req.sql, req.database_id))
    except UpstreamError as e:
        raise CreationFailed(e) from e

    card = card if isinstance(card, dict) else {}
    return QuestionRef(question_id=card.get("id"), name=card.get("name"), url=question_url(card))


def _card_id(question_id: Any) -> int:
    # card ids go into the request path, so only plain positive integers pass
    if isinstance(question_id, int) and not isinstance(question_id, bool) and question_id > 0:
        return question_id
    if isinstance(question_id, str) and question_id.isascii() and question_id.isdigit() and int(question_id) > 0:
        return int(question_id)
    raise ValidationError("question_id must be a positive integer")


async def get_question_results(req: ResultsRequest, client: UpstreamClient) -> ResultSet:
    """
    Run a saved question with no parameters.
    Missing data.cols / data.rows come back as empty lists; raw is the untouched payload.
    """
    if not req.question_id:
        raise ValidationError("question_id is required")
    card_id = _card_id(req.question_id)

    try:
        payload = await client.call_metabase(f"/api/card/{card_id}/query", "POST", {"parameters": []})
    except UpstreamError as e:
        raise ExecutionFailed(e) from e

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        data = {}
    return ResultSet(cols=data.get("cols") or [], rows=data.get("rows") or [], raw=payload)

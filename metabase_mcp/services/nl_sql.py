# metabase_mcp/services/nl_sql.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from metabase_mcp.core.config import Settings
from metabase_mcp.core.errors import ConfigurationError, GenerationEmpty, ValidationError
from metabase_mcp.schemas.requests import TranslationRequest
from metabase_mcp.schemas.responses import TranslationResult
from metabase_mcp.services.upstream import UpstreamClient
from metabase_mcp.utils.allowlist import is_database_allowed

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

_RULES = [
    "You are a SQL assistant for Metabase, generating safe, read-only SQL for PostgreSQL.",
    "RULES:",
    "- Only use SELECT statements (no INSERT/UPDATE/DELETE/ALTER/DROP).",
    "- Prefer existing tables and columns from the hints.",
    "- Do not guess table names beyond the hints; if unsure, say you are unsure.",
]


def build_system_prompt(schema_hint: Optional[str] = None, table_hints: Optional[List[str]] = None) -> str:
    parts = [
        *_RULES,
        f"SCHEMA HINT:\n{schema_hint}" if schema_hint else "",
        f"TABLE HINTS: {', '.join(table_hints)}" if table_hints else "",
    ]
    return "\n".join(p for p in parts if p)


def build_chat_payload(req: TranslationRequest, model: str) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": build_system_prompt(req.schema_hint, req.table_hints)},
            {"role": "user", "content": req.text},
        ],
    }


def _first_completion_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content.strip() if isinstance(content, str) else ""


async def translate_to_sql(req: TranslationRequest, settings: Settings, client: UpstreamClient) -> TranslationResult:
    """
    Natural language -> SQL via chat completions.

    Read-only intent is only requested in the system prompt. The returned sql is
    not parsed or verified, so callers must not treat it as safe to run.
    """
    if not req.text or not req.database_id:
        raise ValidationError("text and database_id are required")

    if not is_database_allowed(req.database_id, settings.allowed_database_ids):
        raise ValidationError("database_id not allowed")

    if not settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY not set on server")

    data = await client.call_openai(CHAT_COMPLETIONS_PATH, build_chat_payload(req, settings.nl_sql_model))

    sql = _first_completion_text(data)
    if not sql:
        raise GenerationEmpty()

    return TranslationResult(sql=sql, database_id=req.database_id)

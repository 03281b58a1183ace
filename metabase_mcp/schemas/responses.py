from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


class TranslationResult(BaseModel):
    # untrusted model output, never parsed or checked for read-only statements
    sql: str
    database_id: Union[int, str]


class QuestionRef(BaseModel):
    question_id: Any
    name: Optional[str] = None
    url: str


class ResultSet(BaseModel):
    cols: List[Any] = []
    rows: List[Any] = []
    raw: Any = None


class HealthResponse(BaseModel):
    ok: bool
    service: str


class ErrorBody(BaseModel):
    error: str
    details: Optional[Union[Dict[str, Any], List[Any], str]] = None

from typing import List, Optional, Union

from pydantic import BaseModel, Field

# All fields optional: handlers check presence and raise their own 400 messages.
DatabaseId = Union[int, str]


class TranslationRequest(BaseModel):
    text: Optional[str] = Field(None, description="Natural language question.")
    database_id: Optional[DatabaseId] = Field(None, description="Metabase database id.")
    schema_hint: Optional[str] = Field(None, description="Free-form schema description passed to the model.")
    table_hints: Optional[List[str]] = Field(None, description="Table names the model should prefer.")


class QuestionCreateRequest(BaseModel):
    name: Optional[str] = Field(None, description="Display name of the saved question.")
    sql: Optional[str] = Field(None, description="Native SQL stored verbatim in the card.")
    database_id: Optional[DatabaseId] = None


class ResultsRequest(BaseModel):
    question_id: Optional[Union[int, str]] = Field(None, description="Id of a saved question (card).")

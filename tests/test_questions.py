import httpx
import pytest

from metabase_mcp.core.errors import CreationFailed, ExecutionFailed, Upstream, ValidationError
from metabase_mcp.schemas.requests import QuestionCreateRequest, ResultsRequest
from metabase_mcp.services.questions import create_question, get_question_results, question_url
from metabase_mcp.services.upstream import UpstreamClient
from tests.conftest import FakeUpstream, make_settings


@pytest.mark.asyncio
async def test_create_question_posts_native_card(upstream_client, upstream):
    """The card is a native query with the SQL embedded unmodified"""
    settings = make_settings(ALLOWED_DATABASES="2")
    upstream.reply(200, {"id": 41, "name": "Q1", "public_uuid": None})

    ref = await create_question(QuestionCreateRequest(name="Q1", sql="SELECT 1", database_id=2), settings, upstream_client)

    assert ref.question_id == 41
    assert ref.name == "Q1"
    assert ref.url == "/question/41"
    req = upstream.calls[0]
    assert req.method == "POST"
    assert req.url.path == "/api/card"
    assert upstream.sent_json() == {
        "name": "Q1",
        "display": "table",
        "dataset_query": {"type": "native", "native": {"query": "SELECT 1"}, "database": 2},
    }


@pytest.mark.asyncio
async def test_create_question_keeps_sql_byte_for_byte(settings, upstream_client, upstream):
    sql = "select *\n  from \"Orders\" -- comment\nwhere x = 'a;b'"
    upstream.reply(200, {"id": 1, "name": "raw"})

    await create_question(QuestionCreateRequest(name="raw", sql=sql, database_id="7"), settings, upstream_client)

    assert upstream.sent_json()["dataset_query"]["native"]["query"] == sql
    assert upstream.sent_json()["dataset_query"]["database"] == "7"


def test_public_uuid_gives_public_url():
    assert question_url({"id": 5, "public_uuid": "abc-123"}) == "/public/question/abc-123"
    assert question_url({"id": 5}) == "/question/5"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fields",
    [
        {"sql": "SELECT 1", "database_id": 2},
        {"name": "Q", "database_id": 2},
        {"name": "Q", "sql": "SELECT 1"},
        {"name": "", "sql": "SELECT 1", "database_id": 2},
    ],
)
async def test_create_question_requires_all_fields(settings, upstream_client, upstream, fields):
    with pytest.raises(ValidationError, match="name, sql, database_id are required"):
        await create_question(QuestionCreateRequest(**fields), settings, upstream_client)
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_create_question_respects_allow_list(upstream_client, upstream):
    settings = make_settings(ALLOWED_DATABASES="2")
    with pytest.raises(ValidationError, match="database_id not allowed"):
        await create_question(QuestionCreateRequest(name="Q", sql="SELECT 1", database_id=3), settings, upstream_client)
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_create_question_wraps_upstream_failure(settings, upstream_client, upstream):
    upstream.reply(400, {"errors": {"name": "value must be a non-blank string."}})

    with pytest.raises(CreationFailed) as exc:
        await create_question(QuestionCreateRequest(name="Q", sql="SELECT 1", database_id=2), settings, upstream_client)

    assert exc.value.details == {"errors": {"name": "value must be a non-blank string."}}
    assert exc.value.upstream is Upstream.METABASE


@pytest.mark.asyncio
async def test_create_question_without_metabase_config_fails_as_creation():
    settings = make_settings(METABASE_URL=None)
    upstream = FakeUpstream()
    client = UpstreamClient(settings, transport=httpx.MockTransport(upstream))

    with pytest.raises(CreationFailed) as exc:
        await create_question(QuestionCreateRequest(name="Q", sql="SELECT 1", database_id=2), settings, client)

    assert "Metabase not configured" in exc.value.details
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_results_returns_cols_rows_and_raw(upstream_client, upstream):
    payload = {
        "status": "completed",
        "row_count": 2,
        "data": {"cols": [{"name": "id"}, {"name": "total"}], "rows": [[1, 9.5], [2, 3.0]]},
    }
    upstream.reply(202, payload)

    result = await get_question_results(ResultsRequest(question_id=123), upstream_client)

    assert result.cols == [{"name": "id"}, {"name": "total"}]
    assert result.rows == [[1, 9.5], [2, 3.0]]
    assert result.raw == payload
    assert upstream.calls[0].url.path == "/api/card/123/query"
    assert upstream.sent_json() == {"parameters": []}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"status": "completed"}, {"data": None}, {"data": {"cols": None}}])
async def test_results_default_to_empty_lists(upstream_client, upstream, payload):
    upstream.reply(200, payload)

    result = await get_question_results(ResultsRequest(question_id=123), upstream_client)

    assert result.cols == []
    assert result.rows == []
    assert result.raw == payload


@pytest.mark.asyncio
async def test_results_require_question_id(upstream_client, upstream):
    with pytest.raises(ValidationError, match="question_id is required"):
        await get_question_results(ResultsRequest(), upstream_client)
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_results_wrap_upstream_failure(upstream_client, upstream):
    upstream.fail_with(httpx.ConnectError, "connection refused")
    with pytest.raises(ExecutionFailed):
        await get_question_results(ResultsRequest(question_id=5), upstream_client)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "question_id",
    ["1/../../database/1/sync_schema?", "12?x=1", "abc", "-3", -3, "1.5", "١٢"],
)
async def test_results_reject_non_integer_question_id(upstream_client, upstream, question_id):
    """Only a plain positive id may end up in the card path"""
    with pytest.raises(ValidationError, match="question_id must be a positive integer"):
        await get_question_results(ResultsRequest(question_id=question_id), upstream_client)
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_results_accept_digit_string_question_id(upstream_client, upstream):
    upstream.reply(200, {"data": {"cols": [], "rows": []}})
    await get_question_results(ResultsRequest(question_id="0042"), upstream_client)
    assert upstream.calls[0].url.path == "/api/card/42/query"

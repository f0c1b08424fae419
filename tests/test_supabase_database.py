from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from skillswap.core.database import Between, Contains, In, Like, SupabaseDatabase
from skillswap.core.exceptions import ConflictError, NotFoundError

class FakeQuery:
    """Records every builder call; ``execute`` hands back the client's next canned response."""

    def __init__(self, client, *call):
        self.client = client
        self.calls = [call]
        client.queries.append(self)

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        response = self.client.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def called(self, name):
        return [(args, kwargs) for call_name, args, kwargs in self.calls[1:] if call_name == name]

class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries = []

    def table(self, name):
        return FakeQuery(self, "table", name)

    def rpc(self, name, params):
        return FakeQuery(self, "rpc", name, params)

def result(data=None, count=None):
    return SimpleNamespace(data=data if data is not None else [], count=count)

def api_error(code, message="error"):
    return APIError({"code": code, "message": message, "details": None, "hint": None})

async def test_select_translates_filters_order_and_range():
    client = FakeClient(result([{"id": "u1"}]))
    db = SupabaseDatabase(client)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    rows = await db.select(
        "users",
        {
            "is_active": True,
            "is_public": False,
            "bio": None,
            "name": Like("50%_off"),
            "availability": Contains("weekends"),
            "id": In(["u1", "u2"]),
            "created_at": Between(start, None),
            "role": "user",
        },
        order_by={"rating->average": "desc", "name": "asc"},
        limit=10,
        offset=20,
    )

    assert rows == [{"id": "u1"}]
    query = client.queries[0]
    assert query.calls[0] == ("table", "users")
    assert query.called("select") == [(("*",), {"count": None})]
    assert query.called("eq") == [
        (("is_active", "true"), {}),
        (("is_public", "false"), {}),
        (("role", "user"), {}),
    ]
    assert query.called("is_") == [(("bio", "null"), {})]
    assert query.called("ilike") == [(("name", "%50\\%\\_off%"), {})]
    assert query.called("filter") == [(("availability", "cs", '["weekends"]'), {})]
    assert query.called("in_") == [(("id", ["u1", "u2"]), {})]
    assert query.called("gte") == [(("created_at", "2024-01-01T00:00:00.000000+00:00"), {})]
    assert query.called("lte") == []
    assert query.called("order") == [
        (("rating->average",), {"desc": True}),
        (("name",), {"desc": False}),
    ]
    assert query.called("range") == [((20, 29), {})]

async def test_any_of_becomes_one_or_clause():
    client = FakeClient(result([]))
    db = SupabaseDatabase(client)

    await db.select("swap_requests", {"status": "pending"}, any_of={"requester_id": "u1", "recipient_id": "u1"})
    users_client = FakeClient(result([]))
    await SupabaseDatabase(users_client).select("users", any_of={"name": Like('Ana "A"'), "bio": None, "is_public": True})

    assert client.queries[0].called("or_") == [(('requester_id.eq."u1",recipient_id.eq."u1"',), {})]
    assert users_client.queries[0].called("or_") == [
        (('name.ilike."*Ana \\"A\\"*",bio.is.null,is_public.eq."true"',), {})
    ]

async def test_select_page_asks_for_exact_count():
    client = FakeClient(result([{"id": "s3"}], count=41))
    db = SupabaseDatabase(client)

    rows, total = await db.select_page("swap_requests", None, {"created_at": "desc"}, limit=10, offset=40)

    assert (rows, total) == ([{"id": "s3"}], 41)
    query = client.queries[0]
    assert query.called("select") == [(("*",), {"count": "exact"})]
    assert query.called("range") == [((40, 49), {})]

async def test_count_reads_exact_count_header():
    client = FakeClient(result([{"id": "u1"}], count=7))
    assert await SupabaseDatabase(client).count("users", {"is_active": True}) == 7
    query = client.queries[0]
    assert query.called("select") == [(("id",), {"count": "exact"})]
    assert query.called("range") == [((0, 0), {})]

async def test_unique_violation_maps_to_conflict():
    client = FakeClient(api_error("23505", "duplicate key value violates unique constraint"))
    with pytest.raises(ConflictError):
        await SupabaseDatabase(client).insert("users", {"email": "a@skillswap.io"})

async def test_other_api_errors_propagate():
    client = FakeClient(api_error("42P01", 'relation "nope" does not exist'))
    with pytest.raises(APIError):
        await SupabaseDatabase(client).select("nope")

async def test_malformed_uuid_matches_nothing():
    malformed = 'invalid input syntax for type uuid: "not-a-uuid"'
    client = FakeClient(*(api_error("22P02", malformed) for _ in range(6)))
    db = SupabaseDatabase(client)

    assert await db.select("users", {"id": "not-a-uuid"}) == []
    assert await db.select_one("users", {"id": "not-a-uuid"}) is None
    assert await db.select_page("users", {"id": "not-a-uuid"}, {"created_at": "desc"}, 10) == ([], 0)
    assert await db.update("users", {"id": "not-a-uuid"}, {"is_active": False}) == []
    assert await db.count("users", {"id": "not-a-uuid"}) == 0
    assert await db.increment("users", "not-a-uuid", "swap_count") is None

async def test_insert_with_malformed_reference_is_not_found():
    client = FakeClient(api_error("22P02", 'invalid input syntax for type uuid: "x"'))
    with pytest.raises(NotFoundError):
        await SupabaseDatabase(client).insert("swap_requests", {"recipient_id": "x"})

async def test_update_applies_filters_to_update_query():
    client = FakeClient(result([{"id": "s1", "status": "completed"}]))
    rows = await SupabaseDatabase(client).update("swap_requests", {"id": "s1", "status": "accepted"}, {"status": "completed"})

    assert rows == [{"id": "s1", "status": "completed"}]
    query = client.queries[0]
    assert query.called("update") == [(({"status": "completed"},), {})]
    assert query.called("eq") == [(("id", "s1"), {}), (("status", "accepted"), {})]

async def test_update_requires_filters():
    with pytest.raises(ValueError):
        await SupabaseDatabase(FakeClient()).update("users", {}, {"is_active": False})

@pytest.mark.parametrize(
    "data, expected",
    [
        ([{"id": "u1", "swap_count": 3}], {"id": "u1", "swap_count": 3}),
        ({"id": "u1", "swap_count": 3}, {"id": "u1", "swap_count": 3}),
        ([], None),
    ],
)
async def test_increment_accepts_list_or_single_row(data, expected):
    client = FakeClient(result(data))
    assert await SupabaseDatabase(client).increment("users", "u1", "swap_count", 2) == expected
    assert client.queries[0].calls[0] == (
        "rpc",
        "increment_counter",
        {"table_name": "users", "row_id": "u1", "field": "swap_count", "amount": 2},
    )

async def test_totals_calls_column_totals():
    client = FakeClient(result([{"total": 14, "row_count": 4}]), result([]))
    db = SupabaseDatabase(client)

    assert await db.totals("ratings", "rating", {"rated_user": "u1", "flagged": False}) == (14, 4)
    assert client.queries[0].calls[0] == (
        "rpc",
        "column_totals",
        {"table_name": "ratings", "column_name": "rating", "filters": {"rated_user": "u1", "flagged": False}},
    )
    assert await db.totals("ratings", "rating") == (0, 0)
    assert client.queries[1].calls[0][2]["filters"] == {}

import pytest
import requests
from unittest.mock import MagicMock

from clubhouse.client.api_client import (
    ApiClient,
    ApiClientError,
    ApiUnavailableError,
    CachedResource,
    ReadCache,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_response(status_code, body):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def api(session):
    return ApiClient("http://localhost:3000/api/", session=session)


def test_login_stores_token(api, session):
    session.request.return_value = make_response(200, {"token": "abc", "user": {"user_id": 1}})

    api.login("a@x.com", "p1", role="admin")

    assert api.token == "abc"
    method, url = session.request.call_args[0]
    assert (method, url) == ("POST", "http://localhost:3000/api/login")
    assert session.request.call_args[1]["json"] == {"email": "a@x.com", "password": "p1", "role": "admin"}


def test_requests_carry_bearer_token(api, session):
    api.token = "abc"
    session.request.return_value = make_response(200, [])

    api.events.get_all()

    headers = session.request.call_args[1]["headers"]
    assert headers["Authorization"] == "Bearer abc"


def test_error_response_uses_server_message(api, session):
    session.request.return_value = make_response(404, {"message": "Event not found."})

    with pytest.raises(ApiClientError) as excinfo:
        api.events.get_by_id(5)

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Event not found."


def test_connection_error_is_unavailable(api, session):
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(ApiUnavailableError):
        api.products.get_all()


def test_cache_serves_within_refresh_interval():
    clock = FakeClock()
    fetch = MagicMock(return_value=[1])
    cache = ReadCache(fetch, max_staleness=30, refresh_interval=5, clock=clock)

    cache.get()
    clock.now += 4
    read = cache.get()

    assert read.data == [1]
    assert read.stale is False
    assert fetch.call_count == 1


def test_cache_refreshes_after_interval():
    clock = FakeClock()
    fetch = MagicMock(side_effect=[[1], [1, 2]])
    cache = ReadCache(fetch, max_staleness=30, refresh_interval=5, clock=clock)

    cache.get()
    clock.now += 6
    read = cache.get()

    assert read.data == [1, 2]
    assert fetch.call_count == 2


def test_cache_falls_back_to_stale_copy_when_unreachable():
    clock = FakeClock()
    fetch = MagicMock(side_effect=[[1], ApiUnavailableError("down")])
    cache = ReadCache(fetch, max_staleness=30, refresh_interval=5, clock=clock)

    cache.get()
    clock.now += 20
    read = cache.get()

    assert read.data == [1]
    assert read.stale is True


def test_cache_gives_up_beyond_staleness_window():
    clock = FakeClock()
    fetch = MagicMock(side_effect=[[1], ApiUnavailableError("down")])
    cache = ReadCache(fetch, max_staleness=30, refresh_interval=5, clock=clock)

    cache.get()
    clock.now += 31
    with pytest.raises(ApiUnavailableError):
        cache.get()


def test_cache_without_copy_propagates():
    cache = ReadCache(MagicMock(side_effect=ApiUnavailableError("down")), clock=FakeClock())
    with pytest.raises(ApiUnavailableError):
        cache.get()


def test_server_errors_are_not_masked_by_cache():
    clock = FakeClock()
    fetch = MagicMock(side_effect=[[1], ApiClientError("Invalid or expired token.", 403)])
    cache = ReadCache(fetch, max_staleness=30, refresh_interval=5, clock=clock)

    cache.get()
    clock.now += 10
    with pytest.raises(ApiClientError):
        cache.get()


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        ReadCache(MagicMock(), max_staleness=1, refresh_interval=5)


def test_mutation_invalidates_list_cache(api, session):
    session.request.side_effect = [
        make_response(200, [{"product_id": 1}]),
        make_response(201, {"message": "Product created successfully", "product": {"product_id": 2}}),
        make_response(200, [{"product_id": 1}, {"product_id": 2}]),
    ]
    products = CachedResource(api.products, clock=FakeClock())

    products.list()
    products.create({"name": "Chalk", "price": 2})
    read = products.list()

    assert len(read.data) == 2
    assert session.request.call_count == 3


def test_non_dict_error_body_falls_back_to_status(api, session):
    session.request.return_value = make_response(502, ["upstream", "down"])

    with pytest.raises(ApiClientError) as excinfo:
        api.events.get_all()

    assert excinfo.value.status_code == 502
    assert excinfo.value.message == "HTTP error! status: 502"


def test_non_json_success_body_is_client_error(api, session):
    response = make_response(200, None)
    response.json.side_effect = ValueError("Expecting value")
    session.request.return_value = response

    with pytest.raises(ApiClientError) as excinfo:
        api.products.get_all()

    assert excinfo.value.status_code == 200
    assert "Invalid JSON response" in excinfo.value.message

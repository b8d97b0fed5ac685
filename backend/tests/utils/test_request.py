from starlette.requests import Request

from community_connect.utils.request import get_client_ip, is_api_path


def make_request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("10.0.0.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_forwarded_for_first_address_wins():
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
    assert get_client_ip(request) == "203.0.113.7"


def test_real_ip_header():
    request = make_request({"X-Real-IP": " 198.51.100.4 "})
    assert get_client_ip(request) == "198.51.100.4"


def test_falls_back_to_connection_address():
    assert get_client_ip(make_request()) == "10.0.0.1"


def test_unknown_without_any_source():
    assert get_client_ip(make_request(client=None)) == "unknown"


def test_is_api_path():
    assert is_api_path("/api/users") is True
    assert is_api_path("/api") is True
    assert is_api_path("/apiary") is False
    assert is_api_path("/dashboard") is False

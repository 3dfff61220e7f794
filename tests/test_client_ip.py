"""Tests for client identifier extraction."""

from types import SimpleNamespace

from starlette.requests import Request

from formguard.core.client_ip import UNKNOWN_CLIENT_ID, get_client_ip, hash_client_id


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("10.0.0.9", 5555)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/v1/submissions/screen",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_forwarded_for_first_hop_wins() -> None:
    request = _request(
        {
            "X-Forwarded-For": "203.0.113.5, 70.41.3.18, 150.172.238.178",
            "X-Real-IP": "198.51.100.1",
        }
    )

    assert get_client_ip(request, trust_proxy_headers=True) == "203.0.113.5"


def test_real_ip_then_cloudflare_header() -> None:
    assert get_client_ip(_request({"X-Real-IP": "198.51.100.1"}), trust_proxy_headers=True) == "198.51.100.1"
    assert get_client_ip(_request({"CF-Connecting-IP": "192.0.2.44"}), trust_proxy_headers=True) == "192.0.2.44"


def test_blank_forwarded_for_falls_through() -> None:
    request = _request({"X-Forwarded-For": " , ", "X-Real-IP": "198.51.100.1"})

    assert get_client_ip(request, trust_proxy_headers=True) == "198.51.100.1"


def test_socket_peer_when_no_headers() -> None:
    assert get_client_ip(_request()) == "10.0.0.9"


def test_headers_ignored_by_default() -> None:
    request = _request({"X-Forwarded-For": "203.0.113.5", "X-Real-IP": "198.51.100.1"})

    assert get_client_ip(request) == "10.0.0.9"


def test_sentinel_when_nothing_is_known() -> None:
    assert get_client_ip(_request(client=None)) == UNKNOWN_CLIENT_ID


def test_hash_is_stable_and_does_not_expose_address() -> None:
    digest = hash_client_id("203.0.113.5")

    assert digest == hash_client_id("203.0.113.5")
    assert digest != hash_client_id("203.0.113.6")
    assert len(digest) == 16
    assert "." not in digest


def test_request_client_shape_is_respected() -> None:
    request = SimpleNamespace(headers={}, client=SimpleNamespace(host=""))

    assert get_client_ip(request) == UNKNOWN_CLIENT_ID  # type: ignore[arg-type]

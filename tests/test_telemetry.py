from starlette.requests import Request

from takedown_api.telemetry import parse_otlp_headers, route_label


def make_request(path: str, route=None) -> Request:
    scope = {"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""}
    if route is not None:
        scope["route"] = route
    return Request(scope)


class _Route:
    path = "/v1/takedown-requests"


def test_route_label_prefers_matched_template():
    assert route_label(make_request("/v1/takedown-requests", _Route())) == "/v1/takedown-requests"


def test_route_label_collapses_ids_for_unmatched_paths():
    request = make_request("/v1/things/6f1c2b9e-3a0d-4a4e-9d2f-1b7c5e8a9f10/parts/42")

    assert route_label(request) == "/v1/things/{id}/parts/{id}"


def test_parse_otlp_headers_skips_malformed_pairs():
    assert parse_otlp_headers("authorization=Bearer abc, x-team = ops,broken,=nokey") == {
        "authorization": "Bearer abc",
        "x-team": "ops",
    }
    assert parse_otlp_headers(None) == {}

import threading

import pytest

from fetchlib.capture import ResponseCapture
from fetchlib.errors import UnsupportedCapture
from fetchlib.types import ResponseEvent


def test_result_without_match_times_out_with_sentinels():
    capture = ResponseCapture("https://example.com/")
    snap = capture.result(timeout=0.01)
    assert snap.matched is False
    assert snap.status_code == -1
    assert snap.reason_phrase is None
    assert len(snap.headers) == 0


def test_exact_string_match_only():
    capture = ResponseCapture("https://example.com/page")
    capture.on_response(ResponseEvent("https://example.com/page/", 200, "OK", {}))
    capture.on_response(ResponseEvent("HTTPS://example.com/page", 200, "OK", {}))
    assert capture.result(timeout=0).matched is False

    capture.on_response(ResponseEvent("https://example.com/page", 404, "Not Found", {"Server": "x"}))
    snap = capture.result(timeout=0)
    assert snap.matched
    assert snap.status_code == 404
    assert snap.reason_phrase == "Not Found"
    assert snap.headers.items() == [("Server", "x")]


def test_match_published_across_threads():
    capture = ResponseCapture("https://example.com/")
    event = ResponseEvent("https://example.com/", 200, "OK", {"Content-Type": "text/html"})
    threading.Timer(0.05, capture.on_response, args=(event,)).start()

    snap = capture.result(timeout=5.0)

    assert snap.matched
    assert snap.status_code == 200
    assert snap.headers.get("Content-Type") == "text/html"


def test_unsupported_value_reraised_on_result():
    capture = ResponseCapture("https://example.com/")
    capture.on_response(ResponseEvent("https://example.com/", 200, "OK", {"X-List": ["a", "b"]}))

    with pytest.raises(UnsupportedCapture) as info:
        capture.result(timeout=0)
    assert info.value.value_type == "list"


def test_valid_match_replaces_earlier_unsupported_value():
    capture = ResponseCapture("https://example.com/")
    capture.on_response(ResponseEvent("https://example.com/", 302, "Found", {"X-Count": 1}))
    capture.on_response(ResponseEvent("https://example.com/", 200, "OK", {"Content-Type": "text/html"}))

    snap = capture.result(timeout=0)

    assert snap.status_code == 200
    assert snap.headers.get("Content-Type") == "text/html"

import json

from prometheus_client import CollectorRegistry

from fetchlib.metrics import Metrics
from fetchlib.prometheus_exporter import PrometheusExporter
from fetchlib.storage import JsonlWriter
from fetchlib.types import FetchedResult, Headers


def make_result(**overrides):
    fields = dict(
        requested_url="https://a.com/",
        final_url="https://a.com/",
        fetch_timestamp=1_700_000_000_000,
        headers=Headers([("Content-Type", "text/html"), ("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")]),
        content=b"<html></html>",
        content_type="text/html",
        response_time_millis=12,
        payload=object(),
        remote_host="a.com",
        status_code=200,
        reason_phrase="OK",
    )
    fields.update(overrides)
    return FetchedResult(**fields)


def test_jsonl_writer_appends_records(tmp_path):
    path = tmp_path / "nested" / "out.jsonl"
    with JsonlWriter(str(path)) as writer:
        writer.write_result(make_result())
    with JsonlWriter(str(path), append=True) as writer:
        writer.write_result(make_result(requested_url="https://b.com/"))

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [rec["url"] for rec in lines] == ["https://a.com/", "https://b.com/"]
    assert lines[0]["headers"] == [["Content-Type", "text/html"], ["Set-Cookie", "a=1"], ["Set-Cookie", "b=2"]]
    assert lines[0]["size_bytes"] == len(b"<html></html>")
    assert "payload" not in lines[0]


def test_headers_lookup_is_case_insensitive():
    headers = Headers()
    headers.add("content-TYPE", "text/plain")
    assert headers.get("Content-Type") == "text/plain"
    assert "CONTENT-type" in headers
    assert "Server" not in headers
    assert list(headers) == ["content-TYPE"]


def test_prometheus_exporter_mirrors_totals():
    metrics = Metrics()
    registry = CollectorRegistry()
    exporter = PrometheusExporter(metrics, registry=registry)

    metrics.record_fetch(True, 100, 20.0, redirected=True)
    metrics.record_fetch(True, 50, 300.0, matched=False)
    metrics.record_fetch(False, 0, 0.0)
    exporter.update()
    exporter.update()

    assert registry.get_sample_value("fetcher_fetches_total") == 3
    assert registry.get_sample_value("fetcher_bytes_total") == 150
    assert registry.get_sample_value("fetcher_errors_total") == 1
    assert registry.get_sample_value("fetcher_redirects_total") == 1
    assert registry.get_sample_value("fetcher_unmatched_total") == 1
    assert registry.get_sample_value("fetcher_avg_fetch_duration_seconds") == 0.16

    # each successful fetch is observed once, however often update() runs
    assert registry.get_sample_value("fetcher_fetch_duration_seconds_count") == 2
    assert registry.get_sample_value("fetcher_fetch_duration_seconds_bucket", {"le": "0.1"}) == 1
    assert registry.get_sample_value("fetcher_fetch_duration_seconds_bucket", {"le": "0.5"}) == 2

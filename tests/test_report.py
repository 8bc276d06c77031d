from __future__ import annotations

from tide.metrics import FailureKind, MetricsAggregator, RequestOutcome
from tide.report import EMPTY_MESSAGE, create_separator, render_report


def test_create_separator() -> None:
    assert create_separator(10, 20) == "+------------+----------------------+"


def test_empty_report() -> None:
    assert render_report("https://example.com", 5, MetricsAggregator().summarize()) == EMPTY_MESSAGE


def test_report_rows() -> None:
    aggregator = MetricsAggregator()
    aggregator.record(RequestOutcome(latency_ms=100.0, success=True, attempts=1, started_at=1.0, completed_at=1.1))
    aggregator.record(
        RequestOutcome(
            latency_ms=300.0,
            success=False,
            attempts=3,
            failure_kind=FailureKind.TIMEOUT,
            started_at=1.0,
            completed_at=2.0,
        )
    )
    report = render_report("https://example.com", 5, aggregator.summarize())
    lines = report.splitlines()
    assert lines[0] == "*** Summary Report ***"
    assert f"| {'Total Requests':<25} | 2" in report
    assert f"| {'Successful Requests':<25} | 1" in report
    assert f"| {'Failed Requests':<25} | 1" in report
    assert f"| {'Min Request Time':<25} | 100.000ms" in report
    assert f"| {'Max Request Time':<25} | 300.000ms" in report
    assert f"| {'Median Request Time':<25} | 200.000ms" in report
    assert f"| {'Duration':<25} | 1.000s" in report
    assert "timeout" in report
    widths = {len(line) for line in lines[1:]}
    assert len(widths) == 1


def test_long_url_widens_table() -> None:
    aggregator = MetricsAggregator()
    aggregator.record(RequestOutcome(latency_ms=1.0, success=True, attempts=1))
    url = "https://example.com/" + "a" * 60
    report = render_report(url, 1, aggregator.summarize())
    assert f"| {url} |" in report

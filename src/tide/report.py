from __future__ import annotations

from tide.metrics import FailureKind, MetricsSnapshot

TITLES_WIDTH = 25
MIN_VALUE_WIDTH = 40

EMPTY_MESSAGE = "No requests were completed. Please check your network or target URL."


def create_separator(label_width: int, value_width: int) -> str:
    return f"+{'-' * (label_width + 2)}+{'-' * (value_width + 2)}+"


def _ms(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.3f}ms"


def render_report(target_url: str, concurrency: int, snapshot: MetricsSnapshot) -> str:
    if snapshot.is_empty:
        return EMPTY_MESSAGE
    rows: list[tuple[str, str]] = [
        ("Target URL", target_url),
        ("Concurrency", str(concurrency)),
        ("Duration", f"{snapshot.actual_duration_sec:.3f}s"),
        ("Total Requests", str(snapshot.total_requests)),
        ("Successful Requests", str(snapshot.successful_requests)),
        ("Failed Requests", str(snapshot.failed_requests)),
    ]
    for kind in FailureKind:
        count = snapshot.failures_by_kind.get(kind, 0)
        if count:
            rows.append((f"  {kind.value}", str(count)))
    rows.extend(
        [
            ("Requests/sec", f"{snapshot.requests_per_sec:.2f}"),
            ("Min Request Time", _ms(snapshot.min_ms)),
            ("Median Request Time", _ms(snapshot.median_ms)),
            ("Max Request Time", _ms(snapshot.max_ms)),
            ("Avg Request Time", _ms(snapshot.avg_ms)),
            ("P95 Request Time", _ms(snapshot.p95_ms)),
            ("P99 Request Time", _ms(snapshot.p99_ms)),
        ]
    )
    value_width = max(MIN_VALUE_WIDTH, len(target_url))
    separator = create_separator(TITLES_WIDTH, value_width)
    lines = ["*** Summary Report ***", separator]
    for label, value in rows:
        lines.append(f"| {label:<{TITLES_WIDTH}} | {value:<{value_width}} |")
        lines.append(separator)
    return "\n".join(lines)

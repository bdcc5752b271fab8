from quotekit.core.quotes.models import Quote
from quotekit.core.quotes.trace import QuoteTraceLog

from conftest import StaticTrade


def test_trace_log_is_bounded(make_request):
    trace = QuoteTraceLog(max_entries=2)
    request = make_request()

    for key in ("k1", "k2", "k3"):
        trace.record(key, request, quotes=[Quote(label="a", trade=StaticTrade(1.0))])

    assert len(trace) == 2
    assert [entry.key for entry in trace.entries()] == ["k2", "k3"]


def test_error_entries(make_request):
    trace = QuoteTraceLog()

    entry = trace.record("k1", make_request(), error="No quote available")
    payload = entry.to_dict()

    assert payload["success"] is False
    assert payload["error"] == "No quote available"
    assert payload["request"]["dstSymbol"] == "USDC"
    assert payload["quotes"] == []

    trace.clear()
    assert len(trace) == 0

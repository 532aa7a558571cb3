"""Tests for the pluggable security assessment."""
from security import SecurityContext, assess
from sync_controller import SyncMetrics


def test_https_and_healthy_connection():
    """Test a fully passing assessment."""
    context = SecurityContext("https://hooks.example.com/weather", SyncMetrics(attempts=10, failures=1))

    assessment = assess(context)

    assert assessment.score == 100
    assert assessment.failed == []


def test_plain_http_and_poor_connection():
    """Test a fully failing assessment."""
    context = SecurityContext("http://192.168.1.10:5678/webhook", SyncMetrics(attempts=4, failures=3))

    assessment = assess(context)

    assert assessment.score == 0
    assert assessment.failed == ["https", "connection_quality"]


def test_custom_checks_and_raising_check():
    """Test pluggable checks; a raising check counts as failed."""
    def explode(context):
        raise RuntimeError("no network info")

    checks = [("always", lambda context: True), ("explode", explode)]
    assessment = assess(SecurityContext("https://x", SyncMetrics()), checks)

    assert assessment.score == 50
    assert assessment.passed == ["always"]
    assert assessment.failed == ["explode"]


def test_no_checks():
    assert assess(SecurityContext("https://x", SyncMetrics()), []).score == 0

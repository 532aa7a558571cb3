"""Pluggable security assessment of the sync connection."""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence, Tuple
from urllib.parse import urlparse


@dataclass(frozen=True)
class SecurityContext:
    endpoint: str
    metrics: Any  # SyncMetrics


@dataclass
class SecurityAssessment:
    score: int  # percentage of checks passed
    passed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


SecurityCheck = Tuple[str, Callable[[SecurityContext], bool]]


def uses_https(context: SecurityContext) -> bool:
    return urlparse(context.endpoint).scheme == "https"


def connection_quality(context: SecurityContext) -> bool:
    """Fewer than half of all requests failed."""
    attempts = getattr(context.metrics, "attempts", 0)
    failures = getattr(context.metrics, "failures", 0)
    if attempts == 0:
        return True
    return failures / attempts < 0.5


DEFAULT_CHECKS: Sequence[SecurityCheck] = (
    ("https", uses_https),
    ("connection_quality", connection_quality),
)


def assess(context: SecurityContext, checks: Sequence[SecurityCheck] = DEFAULT_CHECKS) -> SecurityAssessment:
    assessment = SecurityAssessment(score=0)
    for name, check in checks:
        try:
            ok = bool(check(context))
        except Exception as e:
            logging.warning(f"Security check '{name}' raised: {e}")
            ok = False
        (assessment.passed if ok else assessment.failed).append(name)
    if checks:
        assessment.score = round(100 * len(assessment.passed) / len(checks))
    return assessment

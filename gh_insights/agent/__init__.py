"""Analysis agent, its state store and the event transport."""

from .agent import AnalysisAgent
from .scheduler import run_periodic_reports
from .state import RepositoryAnalysisState
from .transport import (
    ISSUES_TOPIC,
    REPORTS_TOPIC,
    TAGS_TOPIC,
    EventTransport,
    InMemoryTransport,
    QueueSubscription,
    Subscription,
)

__all__ = [
    "AnalysisAgent",
    "RepositoryAnalysisState",
    "run_periodic_reports",
    # Transport
    "EventTransport",
    "Subscription",
    "InMemoryTransport",
    "QueueSubscription",
    "ISSUES_TOPIC",
    "TAGS_TOPIC",
    "REPORTS_TOPIC",
]

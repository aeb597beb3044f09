"""Step result data model."""
from typing import NamedTuple, Optional

OUTCOME_CRAWLED = "crawled"
OUTCOME_CACHED = "cached"
OUTCOME_FAILED = "failed"
OUTCOME_RETRY = "retry"
OUTCOME_IDLE = "idle"
OUTCOME_CANCELLED = "cancelled"
OUTCOME_BUDGET = "budget"


class StepResult(NamedTuple):
    """Result of one unit of frontier work."""

    done: bool
    """True once the page budget is spent or no pending work remains"""

    outcome: str
    """What the step did: crawled, cached, failed, retry, idle, cancelled or budget"""

    url: Optional[str] = None

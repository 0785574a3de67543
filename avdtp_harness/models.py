"""
Core data models
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ScenarioStatus(str, Enum):
    """Scenario lifecycle status"""

    IDLE = "idle"
    AWAITING_FIRST_EXCHANGE = "awaiting_first_exchange"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ScenarioStatus.COMPLETED, ScenarioStatus.FAILED)


class ScenarioRole(str, Enum):
    """Which side opens the exchange"""

    ACCEPTOR = "acceptor"  # harness sends first, session answers
    INITIATOR = "initiator"  # session sends first


class ScenarioResult(BaseModel):
    """Outcome of one scenario run"""

    name: str
    status: ScenarioStatus
    cursor: int = 0
    sent: int = 0
    received: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    trace: List[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.COMPLETED


class RunSummary(BaseModel):
    """Aggregate of a harness run"""

    results: List[ScenarioResult] = Field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def exit_status(self) -> int:
        return 0 if self.failed == 0 else 1

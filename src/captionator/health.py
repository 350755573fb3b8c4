"""Vision subsystem health tracking and failure classification."""

import gc
import logging
import time
from typing import Callable, Optional

from .conditions import ConditionsProvider
from .models import FailureClassification, HealthState

logger = logging.getLogger(__name__)

# Health settings
MIN_HEALTHY_SCORE = 0.3
SUCCESS_RECOVERY = 0.2
FAILURE_PENALTY = 0.3
BASE_COOLDOWN = 30.0  # seconds
MAX_COOLDOWN_EXPONENT = 5

CRITICAL_ERROR_MARKERS = (
    "espresso context",
    "context corrupt",
    "cancelled",
    "canceled",
    "assertion",
)


def classify_failure(error: BaseException) -> FailureClassification:
    """
    Decide whether a vision error should count against backend health.

    Context corruption, cancellation and assertion failures are critical;
    everything else is treated as an isolated per-request miss.
    """
    message = str(error).lower()
    if any(marker in message for marker in CRITICAL_ERROR_MARKERS):
        return FailureClassification.CRITICAL
    return FailureClassification.TRANSIENT


def cooldown_for(consecutive_failures: int, base: float = BASE_COOLDOWN) -> float:
    """Seconds to wait before retrying vision after consecutive failures."""
    return base * 2 ** min(consecutive_failures, MAX_COOLDOWN_EXPONENT)


class HealthGatekeeper:
    """Decides whether the vision backend may be used."""

    def __init__(
        self,
        state: Optional[HealthState] = None,
        conditions: Optional[ConditionsProvider] = None,
        clock: Callable[[], float] = time.monotonic,
        base_cooldown: float = BASE_COOLDOWN
    ):
        """
        Initialize the gatekeeper.

        Args:
            state: Health state to track; a fresh healthy state if omitted
            conditions: Provider used to log resource pressure after failures
            clock: Monotonic time source in seconds
            base_cooldown: Cooldown after the first critical failure, doubled per repeat
        """
        self.state = state or HealthState()
        self.conditions = conditions
        self.clock = clock
        self.base_cooldown = base_cooldown

    def is_available(self) -> bool:
        if self.state.score <= MIN_HEALTHY_SCORE:
            logger.info("System health too low (%.1f), using fallback processing", self.state.score)
            return False

        if self.state.last_failure_at is None:
            return True

        elapsed = self.clock() - self.state.last_failure_at
        ready = elapsed > self.cooldown
        if ready:
            logger.info("Vision cooldown period complete, attempting retry after %ds", int(elapsed))
        return ready

    @property
    def cooldown(self) -> float:
        return cooldown_for(self.state.consecutive_failures, self.base_cooldown)

    def record_success(self) -> None:
        self.state.score = min(1.0, self.state.score + SUCCESS_RECOVERY)
        self.state.last_failure_at = None
        self.state.consecutive_failures = 0
        logger.info("Vision processing successful, health score: %.1f", self.state.score)

    def record_failure(self, classification: FailureClassification) -> None:
        """
        Record a vision failure.

        Transient failures are logged and leave health untouched. Critical
        ones degrade the score, start a cooldown and trigger cleanup.
        """
        if classification != FailureClassification.CRITICAL:
            logger.info("Non-critical vision error, health unchanged")
            return

        self.state.score = max(0.0, self.state.score - FAILURE_PENALTY)
        self.state.last_failure_at = self.clock()
        self.state.consecutive_failures += 1

        logger.warning(
            "Vision processing failed (attempt %d), health score: %.1f",
            self.state.consecutive_failures,
            self.state.score
        )

        self._cleanup()
        self._log_resource_status()

    def _cleanup(self) -> None:
        collected = gc.collect()
        logger.debug("Memory cleanup released %d objects", collected)

    def _log_resource_status(self) -> None:
        if self.conditions is None:
            return

        try:
            conditions = self.conditions.current()
        except Exception as e:
            logger.debug("Could not read system conditions: %s", e)
            return

        available = (
            f"{conditions.available_memory // 1_000_000} MB"
            if conditions.available_memory is not None else "unknown"
        )
        logger.warning(
            "System status: physical memory %d MB, available %s, low power %s, thermal %s",
            conditions.physical_memory // 1_000_000,
            available,
            conditions.low_power_mode,
            conditions.thermal_state.value
        )

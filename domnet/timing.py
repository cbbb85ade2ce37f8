"""Timing for provisioning phases.

``PhaseTimer`` wraps one phase of a provisioning run. It observes the phase
duration on ``domnet_provision_phase_seconds``, labelled with the phase and
its outcome, and logs a ``provision_phase`` record carrying the domain.
Metric and logging failures never break the wrapped phase.

Usage:
    from domnet.state import ProvisionState
    from domnet.timing import PhaseTimer

    with PhaseTimer(ProvisionState.ATTACHING_DEVICES, domain_id):
        attach_everything()
"""
from __future__ import annotations

import logging
import time

from domnet.metrics import provision_phase_duration
from domnet.state import ProvisionState

logger = logging.getLogger(__name__)


class PhaseTimer:
    """Synchronous context manager timing one provisioning phase.

    The ``status`` label is ``success`` or ``error`` depending on whether
    the block raised. Exceptions are never suppressed.
    """

    def __init__(
        self,
        phase: ProvisionState,
        domain_id: str | None = None,
        *,
        histogram=provision_phase_duration,
        log_level: int = logging.DEBUG,
    ):
        self.phase = ProvisionState(phase)
        self.domain_id = domain_id
        self.histogram = histogram
        self.log_level = log_level
        self.duration_ms: int = 0
        self.success: bool = True
        self._start: float = 0.0

    @property
    def status(self) -> str:
        return "success" if self.success else "error"

    def __enter__(self) -> "PhaseTimer":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.monotonic() - self._start
        self.duration_ms = int(elapsed * 1000)
        self.success = exc_type is None

        try:
            if self.histogram is not None:
                self.histogram.labels(phase=self.phase.value, status=self.status).observe(elapsed)
        except Exception as e:
            logger.warning("Failed to record metric: %s", e)

        try:
            extra = {
                "event": "provision_phase",
                "phase": self.phase.value,
                "status": self.status,
                "domain_id": self.domain_id,
                "duration_ms": self.duration_ms,
                "success": self.success,
            }
            if exc_type is not None:
                extra["error"] = str(exc_val)
            logger.log(
                self.log_level,
                "Provisioning %s: %s finished in %dms (%s)",
                self.domain_id,
                self.phase.value,
                self.duration_ms,
                self.status,
                extra=extra,
            )
        except Exception as e:
            logger.warning("Failed to log timing: %s", e)

        return False

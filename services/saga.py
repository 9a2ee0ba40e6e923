"""
Saga runner for multi-collection writes.

The backend offers no multi-statement transactions, so a write that spans
several tables is modelled as an ordered list of (action, compensation) steps:

- actions run in order;
- if step k fails, compensations for steps k-1 ... 1 run in reverse order;
- if step k failed with an UNKNOWN outcome (it may have been applied), its own
  compensation runs first, so compensations must be idempotent;
- if any compensation fails, CompensationFailure is raised (and logged at
  CRITICAL) naming every record left behind. Otherwise DependencyWriteError is
  raised, chained to the original StoreError.

Only StoreError triggers compensation. Anything else is a programming error
and propagates untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from repositories.errors import StoreError
from services.errors import CompensationFailure, DependencyWriteError, new_correlation_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[], None]] = None
    # Human-readable reference to what the step writes, e.g. "users:<uuid>".
    resource: str = ""


class Saga:
    """
    Ordered write steps with compensations.

    Example:
        saga = Saga("provision_identity")
        saga.step("insert_identity", insert_identity, compensation=delete_identity, resource="users:...")
        saga.step("insert_credential", insert_credential, resource="garage_auth:...")
        results = saga.run()
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None):
        self.name = name
        self.correlation_id = correlation_id or new_correlation_id()
        self._steps: List[SagaStep] = []

    def step(
        self,
        name: str,
        action: Callable[[], Any],
        *,
        compensation: Optional[Callable[[], None]] = None,
        resource: str = "",
    ) -> "Saga":
        self._steps.append(SagaStep(name=name, action=action, compensation=compensation, resource=resource))
        return self

    def run(self) -> Dict[str, Any]:
        """Run every step; return each action's result keyed by step name."""

        results: Dict[str, Any] = {}
        completed: List[SagaStep] = []

        for step in self._steps:
            try:
                results[step.name] = step.action()
            except StoreError as exc:
                logger.warning(
                    f"Saga '{self.name}' step '{step.name}' failed ({exc.outcome.value})",
                    extra={
                        "saga": self.name,
                        "step": step.name,
                        "outcome": exc.outcome.value,
                        "store_error": str(exc),
                        "correlation_id": self.correlation_id,
                    },
                )
                to_undo = list(reversed(completed))
                if exc.is_unknown:
                    to_undo.insert(0, step)
                self._compensate(failed_step=step, steps=to_undo)
                raise DependencyWriteError(step.name, exc.outcome, self.correlation_id) from exc
            completed.append(step)

        return results

    def _compensate(self, *, failed_step: SagaStep, steps: List[SagaStep]) -> None:
        orphaned: List[str] = []

        for step in steps:
            if step.compensation is None:
                continue
            try:
                step.compensation()
            except StoreError as exc:
                orphaned.append(step.resource or step.name)
                logger.critical(
                    f"Saga '{self.name}' could not compensate step '{step.name}'",
                    extra={
                        "saga": self.name,
                        "step": step.name,
                        "resource": step.resource,
                        "store_error": str(exc),
                        "correlation_id": self.correlation_id,
                    },
                )
            else:
                logger.info(
                    f"Saga '{self.name}' compensated step '{step.name}'",
                    extra={"saga": self.name, "step": step.name, "correlation_id": self.correlation_id},
                )

        if orphaned:
            raise CompensationFailure(failed_step.name, orphaned, self.correlation_id)


__all__ = ["Saga", "SagaStep"]

"""
Job card part allocation.

Submitting parts for a job touches four collections: job card part lines,
the job card's estimated cost, the stock ledger and the parts catalog. The
backend cannot do that in one transaction, so the work is split:

1. Validate every line (nothing is written if any line is invalid).
2. Resolve the job card.
3. Look up category/manufacturer for referenced parts (best effort).
4. Insert every allocation line in one batch. If this fails nothing else runs.
5. Recompute the job card's estimated parts cost from the submitted lines.
6. For each inventory line with a real part, independently:
   read stock -> append ledger entry -> compare-and-swap the on-hand counter.
   A failing line never undoes or blocks another line.
7. Return a per-line report plus a fresh read of the job card's lines.

Key behaviors:
- The allocation batch is all-or-nothing; stock movement is per line and a
  partially applied submission is a normal, reported result.
- Asking for more than is on hand either clamps on-hand stock at zero (default)
  or rejects the line, depending on AllocationSettings.overdraw_policy. The
  ledger records the quantity actually taken so replaying it reproduces stock.
- A ledger entry whose stock update did not happen is cancelled by appending a
  reversing adjustment entry; the ledger itself is never edited.
- A write whose response was lost is settled by reading back: the part's
  ledger after an append, the part's counter after a stock update. Only when
  that read fails too is the line left unresolved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from domain.inventory import LedgerEntry, Part, TransactionType
from domain.job_card import DEFAULT_PART_CATEGORY, Allocation, AllocationStatus, JobCard, PartSource
from domain.time import utc_now
from repositories.errors import StockConflictError, StoreError
from repositories.stores import AllocationLineStore, CatalogStore, JobCardStore, LedgerStore
from services.errors import DependencyWriteError, FieldError, NotFoundError, new_correlation_id
from services.settings import AllocationSettings, OverdrawPolicy
from services.validation import (
    raise_if_invalid,
    require_choice,
    require_text,
    validate_non_negative_amount,
    validate_positive_int,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestedLine:
    """
    One part line submitted for a job card.

    `source` is the raw submitted string ("inventory", "customer" or "external").
    `part_id` is None for parts the customer brings or that are bought in.
    """

    part_id: Optional[UUID]
    part_name: str
    quantity: int
    unit_price: Decimal
    source: str = PartSource.INVENTORY.value
    part_number: Optional[str] = None
    notes: Optional[str] = None


class LineStatus(str, Enum):
    APPLIED = "applied"  # ledger written and stock decremented
    SKIPPED = "skipped"  # line does not draw from inventory
    REJECTED = "rejected"  # not enough on hand under the reject policy
    FAILED = "failed"  # no stock movement kept
    UNRESOLVED = "unresolved"  # ledger and stock may disagree; needs an operator


@dataclass(frozen=True, slots=True)
class LineOutcome:
    line_index: int
    allocation_id: UUID
    part_id: Optional[UUID]
    status: LineStatus
    requested_quantity: int
    applied_quantity: int = 0
    clamped: bool = False
    stock_before: Optional[int] = None
    stock_after: Optional[int] = None
    ledger_entry_id: Optional[UUID] = None
    attempts: int = 0
    error: Optional[str] = None
    correlation_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (LineStatus.APPLIED, LineStatus.SKIPPED)


@dataclass(frozen=True, slots=True)
class AllocationResult:
    """
    Outcome of one allocation submission.

    is_partial is True when the allocation lines were created but at least one
    stock movement or follow-up write did not go through.
    """

    job_card_id: UUID
    lines: List[LineOutcome]
    allocations: List[Allocation]
    estimated_parts_cost: Decimal
    warnings: List[str] = field(default_factory=list)

    @property
    def failed_lines(self) -> List[LineOutcome]:
        return [line for line in self.lines if not line.succeeded]

    @property
    def clamped_lines(self) -> List[LineOutcome]:
        return [line for line in self.lines if line.clamped]

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_lines) or bool(self.warnings)


def validate_requested_lines(lines: Sequence[RequestedLine]) -> List[FieldError]:
    """Check every line and return all problems at once, indexed like `lines[2].quantity`."""

    if not lines:
        return [FieldError("lines", "at least one part line is required")]

    errors: List[FieldError] = []
    for index, line in enumerate(lines):
        prefix = f"lines[{index}]"
        if line.part_id is None:
            errors += require_text(f"{prefix}.part_name", line.part_name)
        errors += validate_positive_int(f"{prefix}.quantity", line.quantity)
        errors += validate_non_negative_amount(f"{prefix}.unit_price", line.unit_price)
        errors += require_choice(f"{prefix}.source", line.source, PartSource.values())
    return errors


class AllocationCoordinator:
    """Allocates parts to job cards. See the module docstring for the algorithm."""

    def __init__(
        self,
        job_cards: JobCardStore,
        allocation_lines: AllocationLineStore,
        catalog: CatalogStore,
        ledger: LedgerStore,
        *,
        settings: AllocationSettings = AllocationSettings(),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._job_cards = job_cards
        self._allocation_lines = allocation_lines
        self._catalog = catalog
        self._ledger = ledger
        self._settings = settings
        self._clock = clock

    def allocate(self, job_card_id: UUID, actor_id: UUID, lines: Sequence[RequestedLine]) -> AllocationResult:
        """
        Allocate the submitted lines to a job card.

        Raises:
            ValidationError: a line is malformed (nothing written)
            NotFoundError: the job card does not exist (nothing written)
            DependencyWriteError: the allocation batch could not be inserted
            StoreError: a lookup failed before anything was written
        """

        raise_if_invalid(validate_requested_lines(lines))

        job_card = self._job_cards.get_job_card(job_card_id)
        if job_card is None:
            raise NotFoundError("job card", str(job_card_id))

        now = self._clock()
        parts = self._lookup_parts(lines)
        allocations = [
            self._build_allocation(job_card, actor_id, line, parts.get(line.part_id) if line.part_id else None, now)
            for line in lines
        ]

        try:
            self._allocation_lines.insert_batch(allocations)
        except StoreError as exc:
            correlation_id = new_correlation_id()
            logger.error(
                "Failed to insert job card part lines",
                extra={
                    "job_card_id": str(job_card.job_card_id),
                    "line_count": len(allocations),
                    "outcome": exc.outcome.value,
                    "store_error": str(exc),
                    "correlation_id": correlation_id,
                },
            )
            raise DependencyWriteError("insert_allocations", exc.outcome, correlation_id) from exc

        warnings: List[str] = []
        estimated_parts_cost = sum((allocation.line_total for allocation in allocations), Decimal("0"))
        try:
            self._job_cards.update_estimated_parts_cost(
                job_card.job_card_id, estimated_parts_cost, updated_at=self._clock()
            )
        except StoreError as exc:
            logger.error(
                "Failed to update job card estimated parts cost",
                extra={"job_card_id": str(job_card.job_card_id), "store_error": str(exc)},
            )
            warnings.append("Estimated parts cost could not be updated")

        outcomes: List[LineOutcome] = []
        for index, allocation in enumerate(allocations):
            if allocation.draws_from_inventory and allocation.part_id is not None:
                outcomes.append(self._move_stock(index, allocation, allocation.part_id, actor_id))
            else:
                outcomes.append(
                    LineOutcome(
                        line_index=index,
                        allocation_id=allocation.allocation_id,
                        part_id=allocation.part_id,
                        status=LineStatus.SKIPPED,
                        requested_quantity=allocation.quantity,
                    )
                )

        try:
            current = self._allocation_lines.list_by_job_card(job_card.job_card_id)
        except StoreError as exc:
            logger.warning(
                "Failed to re-read job card part lines; returning the submitted lines",
                extra={"job_card_id": str(job_card.job_card_id), "store_error": str(exc)},
            )
            warnings.append("Job card part lines could not be re-read; showing submitted lines only")
            current = list(allocations)

        result = AllocationResult(
            job_card_id=job_card.job_card_id,
            lines=outcomes,
            allocations=current,
            estimated_parts_cost=estimated_parts_cost,
            warnings=warnings,
        )
        logger.info(
            "Allocated parts to job card",
            extra={
                "job_card_id": str(job_card.job_card_id),
                "line_count": len(outcomes),
                "failed_lines": len(result.failed_lines),
                "clamped_lines": len(result.clamped_lines),
            },
        )
        return result

    def job_card_parts(self, job_card_id: UUID) -> List[Allocation]:
        """Allocation lines currently on a job card. Raises NotFoundError for an unknown job card."""

        if self._job_cards.get_job_card(job_card_id) is None:
            raise NotFoundError("job card", str(job_card_id))
        return self._allocation_lines.list_by_job_card(job_card_id)

    def _lookup_parts(self, lines: Sequence[RequestedLine]) -> Dict[UUID, Part]:
        """Fetch referenced parts for display fields. Missing or unreadable parts are simply left out."""

        parts: Dict[UUID, Part] = {}
        for line in lines:
            if line.part_id is None or line.part_id in parts:
                continue
            try:
                part = self._catalog.get_part(line.part_id)
            except StoreError as exc:
                logger.warning(
                    "Part lookup failed; using default category",
                    extra={"part_id": str(line.part_id), "store_error": str(exc)},
                )
                continue
            if part is not None:
                parts[line.part_id] = part
        return parts

    @staticmethod
    def _build_allocation(
        job_card: JobCard,
        actor_id: UUID,
        line: RequestedLine,
        part: Optional[Part],
        now: datetime,
    ) -> Allocation:
        part_number = line.part_number or (part.part_number if part else None)
        part_name = (line.part_name or "").strip()
        if not part_name:
            part_name = (part.part_name if part else "") or part_number or str(line.part_id)

        return Allocation(
            allocation_id=uuid4(),
            job_card_id=job_card.job_card_id,
            part_id=line.part_id,
            part_name=part_name,
            quantity=line.quantity,
            unit_price=Decimal(str(line.unit_price)),
            source=PartSource(line.source),
            status=AllocationStatus.REQUESTED,
            part_number=part_number,
            category=(part.category if part and part.category else DEFAULT_PART_CATEGORY),
            manufacturer=part.manufacturer if part else None,
            requested_by=actor_id,
            notes=line.notes,
            created_at=now,
        )

    def _move_stock(self, index: int, allocation: Allocation, part_id: UUID, actor_id: UUID) -> LineOutcome:
        """
        Read stock, append the ledger entry, then swap the on-hand counter.

        Retries from the read when another writer changed the counter in
        between, after cancelling the stale ledger entry.
        """

        correlation_id = new_correlation_id()

        def outcome(status: LineStatus, attempt: int, error: Optional[str] = None, **values) -> LineOutcome:
            return LineOutcome(
                line_index=index,
                allocation_id=allocation.allocation_id,
                part_id=part_id,
                status=status,
                requested_quantity=allocation.quantity,
                attempts=attempt,
                error=error,
                correlation_id=correlation_id if status is not LineStatus.APPLIED else None,
                **values,
            )

        for attempt in range(1, self._settings.max_attempts + 1):
            try:
                part = self._catalog.get_part(part_id)
            except StoreError as exc:
                self._log_line_failure("Failed to read part stock", allocation, exc, correlation_id)
                return outcome(LineStatus.FAILED, attempt, "Part stock could not be read")
            if part is None:
                return outcome(LineStatus.FAILED, attempt, "Part no longer exists in the catalog")

            applied = min(allocation.quantity, part.on_hand_stock)
            clamped = applied < allocation.quantity
            if clamped and self._settings.overdraw_policy is OverdrawPolicy.REJECT:
                return outcome(
                    LineStatus.REJECTED,
                    attempt,
                    f"Requested {allocation.quantity} but only {part.on_hand_stock} on hand",
                    stock_before=part.total_stock,
                    stock_after=part.total_stock,
                )

            stock_before = part.total_stock
            entry = LedgerEntry(
                entry_id=uuid4(),
                part_id=part.part_id,
                transaction_type=TransactionType.ALLOCATION,
                quantity=applied,
                unit_price=allocation.unit_price,
                stock_before=stock_before,
                stock_after=stock_before - applied,
                performed_by=actor_id,
                job_card_id=allocation.job_card_id,
                allocation_id=allocation.allocation_id,
                notes=(
                    f"Requested {allocation.quantity}, only {part.on_hand_stock} on hand; clamped to {applied}"
                    if clamped
                    else None
                ),
                created_at=self._clock(),
            )

            try:
                self._ledger.append(entry)
            except StoreError as exc:
                if not exc.is_unknown:
                    self._log_line_failure("Failed to append ledger entry", allocation, exc, correlation_id)
                    return outcome(LineStatus.FAILED, attempt, "Stock ledger could not be written")
                recorded = self._ledger_entry_recorded(entry)
                if recorded is None:
                    self._log_unresolved("Ledger append outcome unknown; stock left untouched", allocation, correlation_id)
                    return outcome(LineStatus.UNRESOLVED, attempt, "Stock ledger write could not be confirmed")
                if not recorded:
                    self._log_line_failure("Ledger append did not land", allocation, exc, correlation_id)
                    return outcome(LineStatus.FAILED, attempt, "Stock ledger could not be written")
                logger.info(
                    "Ledger append landed despite a lost response",
                    extra={"ledger_entry_id": str(entry.entry_id), "correlation_id": correlation_id},
                )

            applied_values = dict(
                applied_quantity=applied,
                clamped=clamped,
                stock_before=entry.stock_before,
                stock_after=entry.stock_after,
                ledger_entry_id=entry.entry_id,
            )

            try:
                self._catalog.decrement_stock(part, applied)
            except StockConflictError:
                logger.info(
                    "Part stock changed concurrently; retrying",
                    extra={"part_id": str(part.part_id), "attempt": attempt, "correlation_id": correlation_id},
                )
                if not self._reverse(entry, "stock changed before it could be updated", correlation_id):
                    return outcome(LineStatus.UNRESOLVED, attempt, "Stock ledger could not be corrected")
                continue
            except StoreError as exc:
                if exc.is_unknown:
                    return self._settle_unknown_decrement(part, entry, attempt, outcome, applied_values, correlation_id)
                self._log_line_failure("Failed to update part stock", allocation, exc, correlation_id)
                if not self._reverse(entry, "stock update failed", correlation_id):
                    return outcome(LineStatus.UNRESOLVED, attempt, "Stock ledger could not be corrected")
                return outcome(LineStatus.FAILED, attempt, "Part stock could not be updated")

            if clamped:
                logger.info(
                    "Allocation exceeded on-hand stock; clamped to zero",
                    extra={
                        "part_id": str(part.part_id),
                        "requested": allocation.quantity,
                        "applied": applied,
                    },
                )
            return outcome(LineStatus.APPLIED, attempt, **applied_values)

        self._log_unresolved_conflicts(allocation, correlation_id)
        return outcome(
            LineStatus.FAILED,
            self._settings.max_attempts,
            f"Part stock kept changing; gave up after {self._settings.max_attempts} attempts",
        )

    def _settle_unknown_decrement(
        self,
        observed: Part,
        entry: LedgerEntry,
        attempt: int,
        outcome: Callable[..., LineOutcome],
        applied_values: dict,
        correlation_id: str,
    ) -> LineOutcome:
        """
        The stock update may or may not have happened. Re-read the counter to
        decide instead of guessing.
        """

        try:
            current = self._catalog.get_part(observed.part_id)
        except StoreError:
            current = None

        if current is not None:
            if current.on_hand_stock == observed.on_hand_stock - entry.quantity:
                return outcome(LineStatus.APPLIED, attempt, **applied_values)
            if current.on_hand_stock == observed.on_hand_stock:
                if self._reverse(entry, "stock update was not applied", correlation_id):
                    return outcome(LineStatus.FAILED, attempt, "Part stock could not be updated")

        self._log_unresolved("Stock update outcome unknown", observed, correlation_id)
        return outcome(LineStatus.UNRESOLVED, attempt, "Part stock update could not be confirmed")

    def _ledger_entry_recorded(self, entry: LedgerEntry) -> Optional[bool]:
        """Whether `entry` is in the part's ledger; None when the ledger cannot be read."""

        try:
            entries = self._ledger.list_by_part(entry.part_id)
        except StoreError:
            return None
        return any(recorded.entry_id == entry.entry_id for recorded in entries)

    def _reverse(self, entry: LedgerEntry, reason: str, correlation_id: str) -> bool:
        """Append the adjustment that cancels `entry`. Returns False if that also failed."""

        reversal = entry.reversal(
            entry_id=uuid4(),
            notes=f"Reverses {entry.entry_id}: {reason}",
            created_at=self._clock(),
        )
        try:
            self._ledger.append(reversal)
        except StoreError as exc:
            logger.critical(
                "CRITICAL: could not reverse ledger entry; ledger and stock disagree",
                extra={
                    "ledger_entry_id": str(entry.entry_id),
                    "part_id": str(entry.part_id),
                    "store_error": str(exc),
                    "correlation_id": correlation_id,
                },
            )
            return False
        return True

    @staticmethod
    def _log_line_failure(message: str, allocation: Allocation, exc: StoreError, correlation_id: str) -> None:
        logger.warning(
            message,
            extra={
                "allocation_id": str(allocation.allocation_id),
                "part_id": str(allocation.part_id),
                "outcome": exc.outcome.value,
                "store_error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    @staticmethod
    def _log_unresolved(message: str, subject: Allocation | Part, correlation_id: str) -> None:
        logger.critical(
            f"CRITICAL: {message}",
            extra={"part_id": str(subject.part_id), "correlation_id": correlation_id},
        )

    @staticmethod
    def _log_unresolved_conflicts(allocation: Allocation, correlation_id: str) -> None:
        logger.warning(
            "Giving up on stock update after repeated concurrent changes",
            extra={"part_id": str(allocation.part_id), "correlation_id": correlation_id},
        )


__all__ = [
    "AllocationCoordinator",
    "AllocationResult",
    "LineOutcome",
    "LineStatus",
    "RequestedLine",
    "validate_requested_lines",
]

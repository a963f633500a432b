"""Enrollment-to-record reconciliation.

One pass fetches the enrollment, resolves its StudentIdentity, back-links the
enrollment and upserts each non-empty payload domain. The store has no multi-statement
transactions, so every step is idempotent or re-enterable and the whole pass is
replayed under a bounded backoff until it converges.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

from enrollcheck.domain.errors import PartialWriteError
from enrollcheck.domain.identity import resolve_identity
from enrollcheck.domain.model.entities import Enrollment
from enrollcheck.domain.model.enums import OWNED_KINDS, OWNER_KEY, EntityKind
from enrollcheck.domain.remapping import has_content, remap
from enrollcheck.domain.retry import BackoffPolicy, retry_async
from enrollcheck.domain.upsert import upsert

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from enrollcheck.domain.model.identifiers import EnrollmentId, RecordId, StudentId
    from enrollcheck.domain.ports.store import Record, RecordStore
    from enrollcheck.domain.retry import Sleep

log = getLogger(__name__)


@dataclass(slots=True)
class ReconciliationResult:
    """Outcome of a successful ``process`` call."""

    enrollment_id: EnrollmentId
    student_id: StudentId
    written: dict[EntityKind, RecordId] = field(default_factory=dict)
    skipped: tuple[EntityKind, ...] = ()
    back_reference_updated: bool = False
    attempts: int = 1


@dataclass(slots=True)
class ReconciliationPipeline:
    store: RecordStore
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)
    sleep: Sleep = asyncio.sleep

    async def process(self, enrollment_id: EnrollmentId) -> ReconciliationResult:
        """Reconcile one enrollment, retrying transient failures per ``policy``."""

        outcome = await retry_async(
            lambda: self.run_once(enrollment_id),
            policy=self.policy,
            sleep=self.sleep,
            label=f"reconcile enrollment {enrollment_id}",
        )
        result = outcome.value
        result.attempts = outcome.attempts
        return result

    async def run_once(self, enrollment_id: EnrollmentId) -> ReconciliationResult:
        """One reconciliation pass without retry."""

        record = await self.store.get_one(EntityKind.ENROLLMENTS, enrollment_id.value)
        enrollment = Enrollment.from_record(record)

        student_id = await resolve_identity(self.store, enrollment.id)
        log.info("Enrollment %s resolved to student %s", enrollment.id, student_id)

        kinds = [kind for kind in OWNED_KINDS if has_content(enrollment.payload_for(kind))]
        skipped = tuple(kind for kind in OWNED_KINDS if kind not in kinds)

        steps: list[Awaitable[object]] = [self._link_back(record, enrollment, student_id)]
        steps.extend(self._write_domain(enrollment, kind, student_id) for kind in kinds)
        outcomes = await asyncio.gather(*steps, return_exceptions=True)

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            for failure in failures:
                log.warning("Reconciliation step for %s failed: %r", enrollment.id, failure)
            raise PartialWriteError(
                f"Reconciliation of enrollment {enrollment.id} failed", failures
            )

        linked = outcomes[0] is True
        written: dict[EntityKind, RecordId] = {}
        for kind, outcome in zip(kinds, outcomes[1:], strict=True):
            if outcome is None:
                skipped += (kind,)
                continue
            written[kind] = cast("RecordId", outcome)
        return ReconciliationResult(
            enrollment_id=enrollment.id,
            student_id=student_id,
            written=written,
            skipped=skipped,
            back_reference_updated=linked,
        )

    async def _link_back(
        self, record: Record, enrollment: Enrollment, student_id: StudentId
    ) -> bool:
        if enrollment.student_id == student_id:
            return False
        await self.store.update(
            EntityKind.ENROLLMENTS,
            enrollment.id.value,
            {OWNER_KEY: student_id.value},
            record,
        )
        log.info("Enrollment %s back-linked to student %s", enrollment.id, student_id)
        return True

    async def _write_domain(
        self, enrollment: Enrollment, kind: EntityKind, student_id: StudentId
    ) -> RecordId | None:
        typed = remap(kind, enrollment.payload_for(kind))
        payload = typed.to_payload()
        if not payload:
            log.info("Enrollment %s has no recognised %s fields", enrollment.id, kind)
            return None
        row_id = await upsert(self.store, kind, student_id, payload)
        log.info("Saved %s row %s for student %s", kind, row_id, student_id)
        return row_id


async def process_enrollment(
    store: RecordStore,
    enrollment_id: EnrollmentId,
    *,
    policy: BackoffPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
) -> ReconciliationResult:
    pipeline = ReconciliationPipeline(store=store, policy=policy or BackoffPolicy(), sleep=sleep)
    return await pipeline.process(enrollment_id)

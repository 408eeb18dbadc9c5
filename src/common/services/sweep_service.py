import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from uuid import uuid4

from common.models.reservations import Reservation, ReservationStatus
from common.repository.lock_repo import LockRepository
from common.repository.reservation_repo import ReservationRepository
from common.services.billing_service import BillingService
from common.services.report_service import ReportService
from common.services.reservation_service import ReservationService
from common.utils.clock import Clock
from common.utils.constants import (
    CONFIRMATION_CUTOFF,
    SWEEP_LOCK_NAME,
    SWEEP_LOCK_TTL_SECONDS,
)
from common.utils.custom_exceptions import InvalidStateTransition, SweepAlreadyRunning
from common.utils.datetime_normaliser import local_instant

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    run_date: date
    cancelled: List[str] = field(default_factory=list)
    no_shows: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class DailySweepService:
    """The once-a-day reconciliation run.

    1. expire card-less PENDING holds created before today's cutoff
    2. turn CONFIRMED stays whose check-in day has come without a check-in
       into NO_SHOW, billing one night
    3. hand the outcome to the reporting snapshot

    Every write is conditional on the status read here, so a second run over
    the same data changes nothing, and a reservation confirmed concurrently
    is skipped rather than overwritten. Candidates are isolated: one failure
    is logged and the sweep moves on.
    """

    def __init__(
        self,
        reservation_service: ReservationService,
        billing_service: BillingService,
        reservation_repo: ReservationRepository,
        clock: Clock,
        lock_repo: Optional[LockRepository] = None,
        report_service: Optional[ReportService] = None,
    ):
        self.reservation_service = reservation_service
        self.billing_service = billing_service
        self.reservation_repo = reservation_repo
        self.clock = clock
        self.lock_repo = lock_repo
        self.report_service = report_service
        self._running = threading.Lock()

    def run(self) -> SweepResult:
        if not self._running.acquire(blocking=False):
            raise SweepAlreadyRunning("daily sweep is already running")
        try:
            owner = str(uuid4())
            if self.lock_repo and not self.lock_repo.acquire(
                SWEEP_LOCK_NAME, owner, self.clock.now(), SWEEP_LOCK_TTL_SECONDS
            ):
                raise SweepAlreadyRunning("another daily sweep holds the lock")
            try:
                return self._sweep()
            finally:
                if self.lock_repo:
                    self.lock_repo.release(SWEEP_LOCK_NAME, owner)
        finally:
            self._running.release()

    def _sweep(self) -> SweepResult:
        result = SweepResult(run_date=self.clock.today())
        self.expire_pending_holds(result)
        self.bill_no_shows(result)

        if self.report_service:
            try:
                self.report_service.snapshot_day(result.run_date, result)
            except Exception:
                logger.exception(f"Daily report for {result.run_date} failed")

        logger.info(
            f"Daily sweep {result.run_date}: cancelled={len(result.cancelled)} "
            f"no_shows={len(result.no_shows)} skipped={len(result.skipped)} "
            f"failed={len(result.failed)}"
        )
        return result

    def expire_pending_holds(self, result: SweepResult):
        cutoff = local_instant(result.run_date, CONFIRMATION_CUTOFF, self.clock.tz)
        for reservation in self.reservation_repo.get_reservations_by_status(
            ReservationStatus.PENDING
        ):
            if reservation.has_credit_card or reservation.created_at >= cutoff:
                continue
            self._process(
                reservation,
                result.cancelled,
                result,
                self.reservation_service.expire_pending,
            )

    def bill_no_shows(self, result: SweepResult):
        today = result.run_date
        for reservation in self.reservation_repo.get_reservations_by_status(
            ReservationStatus.CONFIRMED
        ):
            if not reservation.check_in <= today < reservation.check_out:
                continue
            self._process(reservation, result.no_shows, result, self._mark_no_show)

    def _mark_no_show(self, reservation: Reservation) -> bool:
        if self.billing_service.has_billing_records(reservation.reservation_id):
            return False
        charge = self.billing_service.build_no_show_charge(reservation)
        self.reservation_service.mark_no_show(reservation, charge)
        return True

    def _process(self, reservation: Reservation, done: List[str], result: SweepResult, action):
        reservation_id = reservation.reservation_id
        try:
            acted = action(reservation)
        except InvalidStateTransition as err:
            logger.info(f"Sweep skipped reservation {reservation_id}: {err}")
            result.skipped.append(reservation_id)
            return
        except Exception:
            logger.exception(f"Sweep failed for reservation {reservation_id}")
            result.failed.append(reservation_id)
            return
        if acted is False:
            result.skipped.append(reservation_id)
        else:
            done.append(reservation_id)

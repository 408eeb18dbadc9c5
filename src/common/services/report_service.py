import logging
from datetime import date

from common.models.reservations import ReservationStatus
from common.repository.report_repo import ReportRepository
from common.repository.reservation_repo import ReservationRepository
from common.utils.clock import Clock

logger = logging.getLogger(__name__)


class ReportService:
    """Feeds the downstream reporting subsystem with one snapshot per day."""

    def __init__(
        self,
        report_repo: ReportRepository,
        reservation_repo: ReservationRepository,
        clock: Clock,
    ):
        self.report_repo = report_repo
        self.reservation_repo = reservation_repo
        self.clock = clock

    def snapshot_day(self, day: date, sweep_result) -> dict:
        in_house = self.reservation_repo.get_reservations_by_status(
            ReservationStatus.CHECKED_IN
        )
        snapshot = {
            "run_date": day.isoformat(),
            "generated_at": self.clock.now().isoformat(),
            "cancelled_count": len(sweep_result.cancelled),
            "no_show_count": len(sweep_result.no_shows),
            "failed_count": len(sweep_result.failed),
            "in_house_count": len(in_house),
            "cancelled_ids": list(sweep_result.cancelled),
            "no_show_ids": list(sweep_result.no_shows),
        }
        self.report_repo.put_daily_snapshot(day, snapshot)
        logger.info(f"Daily report for {day} stored")
        return snapshot

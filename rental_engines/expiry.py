"""
Module: rental_engines.expiry
Responsibility:
    Compute days until a dated event and classify stock lots and scheduled
    maintenance into alert levels; aggregate the actionable alerts and the
    dashboard counters shown next to them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    ``today`` is always passed in by the caller (Clock collaborator).

Invariants enforced:
    - Idempotent classification: the same (entity, today) always yields the
      same level.
    - Threshold boundaries are inclusive: a lot 7 days from expiry is
      URGENT, 8 days is UPCOMING; 30 days is UPCOMING, 31 is OK.
    - Depleted lots (``current_quantity == 0``) never alert.
    - Only Pending maintenance tasks alert.

Failure modes:
    - TypeError when comparing a timezone-aware datetime with a naive one.

Usage:
    from rental_engines.expiry import build_alert_set, classify_lot

    classify_lot(lot, date(2024, 6, 1))        # LotAlertLevel.URGENT
    alerts = build_alert_set(lots, tasks, today)
    alerts.counts()                            # {"expired_lots": 1, ...}
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from rental_engines.tracer import traced_engine
from rental_kernel.domain.inventory import Lot, MaintenanceStatus, MaintenanceTask

# Business thresholds, in days.
URGENT_DAYS = 7
UPCOMING_DAYS = 30
MAINTENANCE_UPCOMING_DAYS = 7

_SECONDS_PER_DAY = 86400


class LotAlertLevel(str, Enum):
    """Expiry classification of a stock lot."""

    NONE = "None"
    OK = "Ok"
    UPCOMING = "Upcoming"
    URGENT = "Urgent"
    EXPIRED = "Expired"


class MaintenanceAlertLevel(str, Enum):
    """Schedule classification of a maintenance task."""

    NONE = "None"
    OK = "Ok"
    UPCOMING = "Upcoming"
    OVERDUE = "Overdue"


_LOT_SEVERITY = {
    LotAlertLevel.EXPIRED: 3,
    LotAlertLevel.URGENT: 2,
    LotAlertLevel.UPCOMING: 1,
}

_MAINTENANCE_SEVERITY = {
    MaintenanceAlertLevel.OVERDUE: 2,
    MaintenanceAlertLevel.UPCOMING: 1,
}


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def days_until(reference: date | datetime, target: date | datetime) -> int:
    """
    Whole days from ``reference`` to ``target``, rounded up.

    A bare date is treated as midnight.  Negative means ``target`` is
    already past; a fraction of a day counts as a full day.
    """
    delta = _as_datetime(target) - _as_datetime(reference)
    # timedelta normalizes to (days, non-negative seconds), so ceil is one step.
    if delta.seconds or delta.microseconds:
        return delta.days + 1
    return delta.days


def classify_lot(lot: Lot, today: date | datetime) -> LotAlertLevel:
    """Expiry level of ``lot`` as of ``today``."""
    if lot.is_depleted or lot.expiration_date is None:
        return LotAlertLevel.NONE
    days = days_until(today, lot.expiration_date)
    if days < 0:
        return LotAlertLevel.EXPIRED
    if days <= URGENT_DAYS:
        return LotAlertLevel.URGENT
    if days <= UPCOMING_DAYS:
        return LotAlertLevel.UPCOMING
    return LotAlertLevel.OK


def classify_maintenance(task: MaintenanceTask, today: date | datetime) -> MaintenanceAlertLevel:
    """Schedule level of ``task`` as of ``today``."""
    if task.status != MaintenanceStatus.PENDING or task.scheduled_date is None:
        return MaintenanceAlertLevel.NONE
    days = days_until(today, task.scheduled_date)
    if days < 0:
        return MaintenanceAlertLevel.OVERDUE
    if days <= MAINTENANCE_UPCOMING_DAYS:
        return MaintenanceAlertLevel.UPCOMING
    return MaintenanceAlertLevel.OK


@dataclass(frozen=True)
class LotAlert:
    """An actionable expiry alert for one lot."""

    lot_id: UUID | str
    product_ref: str
    level: LotAlertLevel
    days_until_expiration: int
    current_quantity: int


@dataclass(frozen=True)
class MaintenanceAlert:
    """An actionable schedule alert for one maintenance task."""

    task_id: UUID | str
    asset_ref: str
    level: MaintenanceAlertLevel
    days_until_scheduled: int


@dataclass(frozen=True)
class AlertSet:
    """
    Actionable alerts, most urgent first.

    Contract:
        Contains no OK/NONE entries.
    Guarantees:
        - ``lot_alerts`` is ordered by severity, then fewest days left.
        - ``maintenance_alerts`` likewise.
    """

    as_of: date
    lot_alerts: tuple[LotAlert, ...] = ()
    maintenance_alerts: tuple[MaintenanceAlert, ...] = ()

    def _lots(self, level: LotAlertLevel) -> tuple[LotAlert, ...]:
        return tuple(a for a in self.lot_alerts if a.level == level)

    def _tasks(self, level: MaintenanceAlertLevel) -> tuple[MaintenanceAlert, ...]:
        return tuple(a for a in self.maintenance_alerts if a.level == level)

    @property
    def expired_lots(self) -> tuple[LotAlert, ...]:
        return self._lots(LotAlertLevel.EXPIRED)

    @property
    def urgent_lots(self) -> tuple[LotAlert, ...]:
        return self._lots(LotAlertLevel.URGENT)

    @property
    def upcoming_lots(self) -> tuple[LotAlert, ...]:
        return self._lots(LotAlertLevel.UPCOMING)

    @property
    def overdue_tasks(self) -> tuple[MaintenanceAlert, ...]:
        return self._tasks(MaintenanceAlertLevel.OVERDUE)

    @property
    def upcoming_tasks(self) -> tuple[MaintenanceAlert, ...]:
        return self._tasks(MaintenanceAlertLevel.UPCOMING)

    @property
    def is_empty(self) -> bool:
        return not self.lot_alerts and not self.maintenance_alerts

    def counts(self) -> dict[str, int]:
        return {
            "expired_lots": len(self.expired_lots),
            "urgent_lots": len(self.urgent_lots),
            "upcoming_lots": len(self.upcoming_lots),
            "overdue_tasks": len(self.overdue_tasks),
            "upcoming_tasks": len(self.upcoming_tasks),
        }


@traced_engine("expiry", "1.0")
def build_alert_set(
    lots: Iterable[Lot],
    tasks: Iterable[MaintenanceTask],
    today: date | datetime,
) -> AlertSet:
    """
    Classify every lot and task and keep the actionable ones.

    Args:
        lots: Stock lots to check.
        tasks: Maintenance tasks to check.
        today: Reference date supplied by the caller's clock.

    Returns:
        AlertSet ordered most urgent first.
    """
    lot_alerts = []
    for lot in lots:
        level = classify_lot(lot, today)
        if level in _LOT_SEVERITY:
            lot_alerts.append(
                LotAlert(
                    lot_id=lot.id,
                    product_ref=lot.product_ref,
                    level=level,
                    days_until_expiration=days_until(today, lot.expiration_date),
                    current_quantity=lot.current_quantity,
                )
            )

    task_alerts = []
    for task in tasks:
        level = classify_maintenance(task, today)
        if level in _MAINTENANCE_SEVERITY:
            task_alerts.append(
                MaintenanceAlert(
                    task_id=task.id,
                    asset_ref=task.asset_ref,
                    level=level,
                    days_until_scheduled=days_until(today, task.scheduled_date),
                )
            )

    lot_alerts.sort(
        key=lambda a: (-_LOT_SEVERITY[a.level], a.days_until_expiration, str(a.lot_id))
    )
    task_alerts.sort(
        key=lambda a: (-_MAINTENANCE_SEVERITY[a.level], a.days_until_scheduled, str(a.task_id))
    )

    as_of = today.date() if isinstance(today, datetime) else today
    return AlertSet(
        as_of=as_of,
        lot_alerts=tuple(lot_alerts),
        maintenance_alerts=tuple(task_alerts),
    )


# =============================================================================
# Dashboard statistics
# =============================================================================


@dataclass(frozen=True)
class LotStatistics:
    """Lot counters: ``active + expired == total``."""

    total: int
    active: int
    expired: int
    expiring_soon: int


@dataclass(frozen=True)
class MaintenanceStatistics:
    """Maintenance counters by status, plus overdue pending tasks."""

    total: int
    pending: int
    in_progress: int
    completed: int
    cancelled: int
    overdue: int


def lot_statistics(lots: Iterable[Lot], today: date | datetime) -> LotStatistics:
    """
    Count lots by expiry state.

    Unlike alerting, counting ignores quantity: a depleted lot past its date
    still counts as expired.  ``expiring_soon`` covers 0..30 days.
    """
    total = expired = expiring_soon = 0
    for lot in lots:
        total += 1
        if lot.expiration_date is None:
            continue
        days = days_until(today, lot.expiration_date)
        if days < 0:
            expired += 1
        elif days <= UPCOMING_DAYS:
            expiring_soon += 1
    return LotStatistics(
        total=total,
        active=total - expired,
        expired=expired,
        expiring_soon=expiring_soon,
    )


def maintenance_statistics(
    tasks: Iterable[MaintenanceTask],
    today: date | datetime,
) -> MaintenanceStatistics:
    """Count maintenance tasks by status; ``overdue`` is a subset of ``pending``."""
    by_status = dict.fromkeys(MaintenanceStatus, 0)
    overdue = 0
    for task in tasks:
        by_status[task.status] += 1
        if classify_maintenance(task, today) == MaintenanceAlertLevel.OVERDUE:
            overdue += 1
    return MaintenanceStatistics(
        total=sum(by_status.values()),
        pending=by_status[MaintenanceStatus.PENDING],
        in_progress=by_status[MaintenanceStatus.IN_PROGRESS],
        completed=by_status[MaintenanceStatus.COMPLETED],
        cancelled=by_status[MaintenanceStatus.CANCELLED],
        overdue=overdue,
    )

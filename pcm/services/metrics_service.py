"""
Maintenance Metrics Service

Pure aggregation over a tenant's equipment and work orders:
- Equipment health (status tier, failure count, MTBF, health score)
- Fleet statistics (active/overdue orders, monthly completions, resolution time)
- Fleet reliability (MTBF/MTTR over a reporting window)
- Technician performance and equipment failure ranking

Every function takes its inputs and a reference clock explicitly and never
raises on inconsistent records; empty inputs yield 0 instead of a division
error.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pcm.models import Equipment, MaintenanceType, WorkOrder, WorkOrderStatus

HEALTHY = 'healthy'
WARNING = 'warning'
CRITICAL = 'critical'

_STATUS_RANK = {HEALTHY: 0, WARNING: 1, CRITICAL: 2}


@dataclass(frozen=True)
class MetricsThresholds:
    """Process-wide thresholds used by the aggregation."""
    preventive_interval_days: int = 90
    warning_after_days: int = 60
    overdue_after_days: int = 7
    reliability_window_days: int = 30


DEFAULT_THRESHOLDS = MetricsThresholds()


@dataclass
class EquipmentHealth:
    equipment: Equipment
    status: str
    failure_count: int
    mtbf_days: float
    days_since_maintenance: int
    last_maintenance: Optional[datetime]
    next_maintenance: datetime
    health_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'equipment_id': self.equipment.id,
            'equipment_name': self.equipment.name,
            'location': self.equipment.location,
            'status': self.status,
            'failure_count': self.failure_count,
            'mtbf_days': round(self.mtbf_days, 2),
            'days_since_maintenance': self.days_since_maintenance,
            'last_maintenance': self.last_maintenance.isoformat() if self.last_maintenance else None,
            'next_maintenance': self.next_maintenance.isoformat(),
            'health_score': self.health_score,
        }


@dataclass
class FleetStats:
    total_equipment: int
    active_orders: int
    completed_this_month: int
    completed_last_month: int
    overdue_orders: int
    avg_resolution_hours: float
    preventive_count: int
    corrective_count: int
    monthly_trend_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_equipment': self.total_equipment,
            'active_orders': self.active_orders,
            'completed_this_month': self.completed_this_month,
            'completed_last_month': self.completed_last_month,
            'overdue_orders': self.overdue_orders,
            'avg_resolution_hours': round(self.avg_resolution_hours, 2),
            'preventive_vs_corrective': {
                'preventive': self.preventive_count,
                'corrective': self.corrective_count,
            },
            'monthly_trend_percent': round(self.monthly_trend_percent, 1),
        }


@dataclass
class TechnicianSummary:
    name: str
    tax_id: str
    total_orders: int = 0
    open_orders: int = 0
    in_progress_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    avg_resolution_hours: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'tax_id': self.tax_id,
            'total_orders': self.total_orders,
            'open_orders': self.open_orders,
            'in_progress_orders': self.in_progress_orders,
            'completed_orders': self.completed_orders,
            'cancelled_orders': self.cancelled_orders,
            'avg_resolution_hours': round(self.avg_resolution_hours, 1),
        }


@dataclass
class FailureRankEntry:
    equipment_name: str
    failure_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'equipment_name': self.equipment_name, 'failure_count': self.failure_count}


@dataclass
class ReliabilitySummary:
    mtbf_hours: float
    mttr_hours: float
    window_days: int
    total_orders: int
    total_equipment: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mtbf_hours': round(self.mtbf_hours, 1),
            'mttr_hours': round(self.mttr_hours, 1),
            'window_days': self.window_days,
            'total_orders': self.total_orders,
            'total_equipment': self.total_equipment,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def _is_resolved(order: WorkOrder) -> bool:
    """Completed and carrying a completion timestamp."""
    return order.status == WorkOrderStatus.COMPLETED and order.completed_at is not None


def _is_failure(order: WorkOrder) -> bool:
    return order.maintenance_type == MaintenanceType.CORRECTIVE


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month_start(month_start: datetime) -> datetime:
    return _month_start(month_start - timedelta(days=1))


# ---------------------------------------------------------------------------
# Equipment health
# ---------------------------------------------------------------------------

def _time_tier(days_since_maintenance: int, thresholds: MetricsThresholds) -> str:
    if days_since_maintenance > thresholds.preventive_interval_days:
        return CRITICAL
    if days_since_maintenance > thresholds.warning_after_days:
        return WARNING
    return HEALTHY


def _escalate(status: str, failure_count: int) -> str:
    """Frequent failures raise the tier, never lower it."""
    if failure_count > 3:
        floor = CRITICAL
    elif failure_count >= 2:
        floor = WARNING
    else:
        floor = HEALTHY
    return status if _STATUS_RANK[status] >= _STATUS_RANK[floor] else floor


def health_score(status: str, failure_count: int, mtbf_days: float) -> int:
    score = 100

    if status == CRITICAL:
        score -= 40
    elif status == WARNING:
        score -= 20

    if failure_count > 3:
        score -= 20
    elif failure_count >= 2:
        score -= 10

    if mtbf_days < 30:
        score -= 20
    elif mtbf_days < 60:
        score -= 10

    return max(0, score)


def evaluate_equipment_health(
    equipment: Equipment,
    orders: Iterable[WorkOrder],
    now: datetime,
    thresholds: MetricsThresholds = DEFAULT_THRESHOLDS,
) -> EquipmentHealth:
    """
    Evaluate one equipment against its work orders.

    Orders that reference another equipment are ignored, so the full tenant
    order list may be passed.
    """
    own_orders = [o for o in orders if o.equipment_id == equipment.id]

    failure_count = sum(1 for o in own_orders if _is_failure(o))
    days_since_installation = (now - equipment.installed_at).days
    if failure_count > 0:
        mtbf_days = days_since_installation / failure_count
    else:
        mtbf_days = float(days_since_installation)

    completions = [o.completed_at for o in own_orders if _is_resolved(o)]
    last_maintenance = max(completions) if completions else None

    interval = timedelta(days=thresholds.preventive_interval_days)
    if last_maintenance is not None:
        next_maintenance = last_maintenance + interval
        days_since_maintenance = (now - last_maintenance).days
    else:
        next_maintenance = equipment.installed_at + interval
        days_since_maintenance = days_since_installation

    status = _escalate(_time_tier(days_since_maintenance, thresholds), failure_count)

    return EquipmentHealth(
        equipment=equipment,
        status=status,
        failure_count=failure_count,
        mtbf_days=mtbf_days,
        days_since_maintenance=days_since_maintenance,
        last_maintenance=last_maintenance,
        next_maintenance=next_maintenance,
        health_score=health_score(status, failure_count, mtbf_days),
    )


def evaluate_fleet_health(
    equipment_list: Sequence[Equipment],
    orders: Sequence[WorkOrder],
    now: datetime,
    thresholds: MetricsThresholds = DEFAULT_THRESHOLDS,
) -> List[EquipmentHealth]:
    by_equipment: Dict[str, List[WorkOrder]] = defaultdict(list)
    for order in orders:
        by_equipment[order.equipment_id].append(order)

    return [
        evaluate_equipment_health(eq, by_equipment.get(eq.id, []), now, thresholds)
        for eq in equipment_list
    ]


def fleet_health_score(healths: Sequence[EquipmentHealth]) -> float:
    return _mean([h.health_score for h in healths])


# ---------------------------------------------------------------------------
# Fleet statistics
# ---------------------------------------------------------------------------

def compute_fleet_stats(
    orders: Sequence[WorkOrder],
    equipment_count: int,
    now: datetime,
    thresholds: MetricsThresholds = DEFAULT_THRESHOLDS,
) -> FleetStats:
    this_month = _month_start(now)
    last_month = _previous_month_start(this_month)
    overdue_after = timedelta(days=thresholds.overdue_after_days)

    resolved = [o for o in orders if _is_resolved(o)]

    active = sum(1 for o in orders if o.status in (WorkOrderStatus.OPEN, WorkOrderStatus.IN_PROGRESS))
    completed_this_month = sum(1 for o in resolved if this_month <= o.completed_at <= now)
    completed_last_month = sum(1 for o in resolved if last_month <= o.completed_at < this_month)
    overdue = sum(
        1 for o in orders
        if o.status == WorkOrderStatus.OPEN and now - o.opened_at > overdue_after
    )

    avg_resolution = _mean([_hours_between(o.opened_at, o.completed_at) for o in resolved])

    preventive = sum(1 for o in orders if o.maintenance_type == MaintenanceType.PREVENTIVE)
    corrective = sum(1 for o in orders if o.maintenance_type == MaintenanceType.CORRECTIVE)

    if completed_last_month > 0:
        trend = (completed_this_month - completed_last_month) / completed_last_month * 100
    else:
        trend = 0.0

    return FleetStats(
        total_equipment=equipment_count,
        active_orders=active,
        completed_this_month=completed_this_month,
        completed_last_month=completed_last_month,
        overdue_orders=overdue,
        avg_resolution_hours=avg_resolution,
        preventive_count=preventive,
        corrective_count=corrective,
        monthly_trend_percent=trend,
    )


def compute_reliability_summary(
    orders: Sequence[WorkOrder],
    equipment_count: int,
    thresholds: MetricsThresholds = DEFAULT_THRESHOLDS,
) -> ReliabilitySummary:
    """
    Fleet MTBF/MTTR for the report view.

    MTBF = window operating hours across the fleet / completed corrective orders
    MTTR = mean opened-to-completed hours of completed corrective orders
    """
    window_days = thresholds.reliability_window_days
    repairs = [o for o in orders if _is_resolved(o) and _is_failure(o)]
    completed_failures = [
        o for o in orders if o.status == WorkOrderStatus.COMPLETED and _is_failure(o)
    ]

    operating_hours = window_days * 24 * equipment_count
    mtbf = operating_hours / len(completed_failures) if completed_failures else 0.0
    mttr = _mean([_hours_between(o.opened_at, o.completed_at) for o in repairs])

    return ReliabilitySummary(
        mtbf_hours=mtbf,
        mttr_hours=mttr,
        window_days=window_days,
        total_orders=len(orders),
        total_equipment=equipment_count,
    )


# ---------------------------------------------------------------------------
# Technicians and failure ranking
# ---------------------------------------------------------------------------

_STATUS_COUNTERS = {
    WorkOrderStatus.OPEN: 'open_orders',
    WorkOrderStatus.IN_PROGRESS: 'in_progress_orders',
    WorkOrderStatus.COMPLETED: 'completed_orders',
    WorkOrderStatus.CANCELLED: 'cancelled_orders',
}


def summarize_technicians(
    orders: Sequence[WorkOrder],
    search: Optional[str] = None,
) -> List[TechnicianSummary]:
    """
    Group orders by (technician name, tax id).

    Resolution time is the mean of raw opened-to-completed hours over the
    technician's completed orders. Summaries keep first-encountered order.
    """
    summaries: Dict[tuple, TechnicianSummary] = {}
    durations: Dict[tuple, List[float]] = defaultdict(list)

    for order in orders:
        key = (order.technician_name, order.technician_tax_id)
        summary = summaries.get(key)
        if summary is None:
            summary = summaries[key] = TechnicianSummary(name=order.technician_name, tax_id=order.technician_tax_id)

        summary.total_orders += 1
        counter = _STATUS_COUNTERS[order.status]
        setattr(summary, counter, getattr(summary, counter) + 1)

        if _is_resolved(order):
            durations[key].append(_hours_between(order.opened_at, order.completed_at))

    for key, summary in summaries.items():
        summary.avg_resolution_hours = _mean(durations.get(key, []))

    result = list(summaries.values())
    if search:
        term = search.strip().lower()
        result = [s for s in result if term in s.name.lower() or term in s.tax_id.lower()]
    return result


def rank_equipment_failures(orders: Sequence[WorkOrder]) -> List[FailureRankEntry]:
    counts: Dict[str, int] = {}
    for order in orders:
        if _is_failure(order):
            counts[order.equipment_name] = counts.get(order.equipment_name, 0) + 1

    # sorted() is stable: ties keep first-encountered order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [FailureRankEntry(equipment_name=name, failure_count=count) for name, count in ranked]

"""
Maintenance alerts derived from a tenant snapshot.

Alerts are recomputed on every request and never stored:
- preventive maintenance past its due date
- equipment in critical health
- work orders open past the overdue threshold
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pcm.services import metrics_service
from pcm.services.metrics_service import DEFAULT_THRESHOLDS, MetricsThresholds


class AlertSeverity(Enum):
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


@dataclass
class MaintenanceAlert:
    id: str
    severity: AlertSeverity
    title: str
    description: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.severity.value,
            'title': self.title,
            'description': self.description,
            'timestamp': self.timestamp.isoformat(),
        }


def build_alerts(snapshot, now: datetime,
                 thresholds: MetricsThresholds = DEFAULT_THRESHOLDS) -> List[MaintenanceAlert]:
    healths = metrics_service.evaluate_fleet_health(
        snapshot.equipment, snapshot.work_orders, now, thresholds
    )
    stats = metrics_service.compute_fleet_stats(
        snapshot.work_orders, len(snapshot.equipment), now, thresholds
    )
    alerts: List[MaintenanceAlert] = []

    due = [h for h in healths if h.next_maintenance < now]
    if due:
        alerts.append(MaintenanceAlert(
            id='preventive-overdue',
            severity=AlertSeverity.WARNING,
            title='Preventive maintenance overdue',
            description=f"{len(due)} equipment item(s) are past their preventive maintenance date",
            timestamp=now,
        ))

    for health in healths:
        if health.status == metrics_service.CRITICAL:
            alerts.append(MaintenanceAlert(
                id=f"critical-{health.equipment.id}",
                severity=AlertSeverity.ERROR,
                title='Critical equipment',
                description=(
                    f"{health.equipment.name} is in critical condition "
                    f"({health.failure_count} failures, score {health.health_score})"
                ),
                timestamp=now,
            ))

    if stats.overdue_orders:
        alerts.append(MaintenanceAlert(
            id='orders-overdue',
            severity=AlertSeverity.WARNING,
            title='Overdue work orders',
            description=(
                f"{stats.overdue_orders} work order(s) open for more than "
                f"{thresholds.overdue_after_days} days"
            ),
            timestamp=now,
        ))

    if not alerts:
        alerts.append(MaintenanceAlert(
            id='all-clear',
            severity=AlertSeverity.INFO,
            title='No pending actions',
            description='All equipment is within its maintenance schedule',
            timestamp=now,
        ))

    return alerts

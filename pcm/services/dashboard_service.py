"""
Dashboard Service

Loads a tenant snapshot and turns it into the view model of each screen:
- Quick stats (fleet statistics)
- Equipment health check (per-equipment health and fleet score)
- Reports (fleet MTBF/MTTR, failure ranking, technician performance)
- Technicians (per-technician summaries with search)

Screen state is explicit: Loading, Ready(data) or Failed(error). A loader
that has been disposed discards the result of an in-flight fetch.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pcm.models import Equipment, WorkOrder
from pcm.services import metrics_service
from pcm.services.metrics_service import DEFAULT_THRESHOLDS, MetricsThresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantSnapshot:
    tenant_id: str
    equipment: List[Equipment]
    work_orders: List[WorkOrder]


def load_tenant_snapshot(store, tenant_id: str) -> TenantSnapshot:
    """Fetch equipment and work orders concurrently and join both results."""
    with ThreadPoolExecutor(max_workers=2) as executor:
        equipment_future = executor.submit(store.list_equipment, tenant_id)
        orders_future = executor.submit(store.list_work_orders, tenant_id)
        equipment = equipment_future.result()
        work_orders = orders_future.result()

    logger.debug(f"Snapshot for {tenant_id}: {len(equipment)} equipment, {len(work_orders)} orders")
    return TenantSnapshot(tenant_id=tenant_id, equipment=equipment, work_orders=work_orders)


# ---------------------------------------------------------------------------
# Screen state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Ready:
    data: Any


@dataclass(frozen=True)
class Failed:
    error: Exception


ScreenState = Union[Loading, Ready, Failed]


class ScreenLoader:
    """
    Runs fetch then build for one screen and tracks the resulting state.

    `fetch` returns the raw snapshot; `build(snapshot, now)` returns the
    view model. Once disposed, a finished load leaves the state untouched.
    """

    def __init__(self, fetch: Callable[[], TenantSnapshot],
                 build: Callable[[TenantSnapshot, datetime], Any]):
        self._fetch = fetch
        self._build = build
        self._state: ScreenState = Loading()
        self._disposed = False
        self._lock = threading.Lock()

    @property
    def state(self) -> ScreenState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self):
        with self._lock:
            self._disposed = True

    def _set_state(self, state: ScreenState) -> bool:
        with self._lock:
            if self._disposed:
                return False
            self._state = state
            return True

    def load(self, now: datetime) -> ScreenState:
        self._set_state(Loading())
        try:
            snapshot = self._fetch()
            result: ScreenState = Ready(self._build(snapshot, now))
        except Exception as e:
            logger.exception("Screen data could not be loaded")
            result = Failed(e)

        if not self._set_state(result):
            logger.debug("Loader disposed before the fetch finished; result discarded")
        return self._state


# ---------------------------------------------------------------------------
# View models
# ---------------------------------------------------------------------------

def build_quick_stats(snapshot: TenantSnapshot, now: datetime,
                      thresholds: MetricsThresholds = DEFAULT_THRESHOLDS) -> Dict[str, Any]:
    stats = metrics_service.compute_fleet_stats(
        snapshot.work_orders, len(snapshot.equipment), now, thresholds
    )
    return stats.to_dict()


def build_health_check(snapshot: TenantSnapshot, now: datetime,
                       thresholds: MetricsThresholds = DEFAULT_THRESHOLDS) -> Dict[str, Any]:
    healths = metrics_service.evaluate_fleet_health(
        snapshot.equipment, snapshot.work_orders, now, thresholds
    )
    return {
        'fleet_health_score': round(metrics_service.fleet_health_score(healths), 1),
        'equipment': [h.to_dict() for h in healths],
    }


def build_reports(snapshot: TenantSnapshot, now: datetime,
                  thresholds: MetricsThresholds = DEFAULT_THRESHOLDS) -> Dict[str, Any]:
    reliability = metrics_service.compute_reliability_summary(
        snapshot.work_orders, len(snapshot.equipment), thresholds
    )
    return {
        'reliability': reliability.to_dict(),
        'equipment_failures': [
            entry.to_dict() for entry in metrics_service.rank_equipment_failures(snapshot.work_orders)
        ],
        'technician_performance': [
            s.to_dict() for s in metrics_service.summarize_technicians(snapshot.work_orders)
        ],
        'generated_at': now.isoformat(),
    }


def build_technicians(snapshot: TenantSnapshot, now: datetime,
                      search: Optional[str] = None) -> Dict[str, Any]:
    summaries = metrics_service.summarize_technicians(snapshot.work_orders, search)
    return {
        'technicians': [s.to_dict() for s in summaries],
        'count': len(summaries),
    }

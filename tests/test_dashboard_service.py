"""
Unit tests for screen loading, dashboard view models and alerts.
"""
from datetime import timedelta

import pytest

from factories import completed_order, make_equipment, make_order
from pcm.models import CompanyRegistration, EquipmentInput, MaintenanceType
from pcm.services.alert_service import AlertSeverity, build_alerts
from pcm.services.dashboard_service import (
    Failed,
    Loading,
    Ready,
    ScreenLoader,
    TenantSnapshot,
    build_health_check,
    build_quick_stats,
    build_reports,
    build_technicians,
    load_tenant_snapshot,
)


def _snapshot(equipment=(), orders=()):
    return TenantSnapshot(tenant_id='tenant-1', equipment=list(equipment), work_orders=list(orders))


class TestScreenLoader:
    """Tests for the Loading/Ready/Failed state machine."""

    def test_starts_loading(self):
        loader = ScreenLoader(fetch=_snapshot, build=lambda snapshot, now: {})
        assert isinstance(loader.state, Loading)

    def test_ready_after_load(self, now):
        loader = ScreenLoader(fetch=_snapshot, build=lambda snapshot, now: {'ok': True})

        state = loader.load(now)

        assert isinstance(state, Ready)
        assert state.data == {'ok': True}

    def test_fetch_failure(self, now):
        def fetch():
            raise ConnectionError('store unavailable')

        loader = ScreenLoader(fetch=fetch, build=lambda snapshot, now: {})

        state = loader.load(now)

        assert isinstance(state, Failed)
        assert isinstance(state.error, ConnectionError)

    def test_build_failure(self, now):
        def build(snapshot, now):
            raise KeyError('missing')

        state = ScreenLoader(fetch=_snapshot, build=build).load(now)

        assert isinstance(state, Failed)

    def test_disposed_during_fetch_discards_result(self, now):
        loader = None

        def fetch():
            loader.dispose()
            return _snapshot()

        loader = ScreenLoader(fetch=fetch, build=lambda snapshot, now: {'ok': True})

        state = loader.load(now)

        assert loader.disposed
        assert isinstance(state, Loading)

    def test_reload_after_failure(self, now):
        calls = []

        def fetch():
            calls.append(1)
            if len(calls) == 1:
                raise TimeoutError()
            return _snapshot()

        loader = ScreenLoader(fetch=fetch, build=lambda snapshot, now: 'done')

        assert isinstance(loader.load(now), Failed)
        assert loader.load(now) == Ready('done')


class TestTenantSnapshot:
    """Tests for load_tenant_snapshot."""

    def test_loads_both_collections(self, store, now):
        company = store.create_company(CompanyRegistration(
            name='Acme', manager_email='a@example.com', password='secret123'
        ))
        store.create_equipment(company.id, EquipmentInput(
            name='Pump', maintenance_type=MaintenanceType.CORRECTIVE,
            installed_at=now - timedelta(days=10),
        ))

        snapshot = load_tenant_snapshot(store, company.id)

        assert snapshot.tenant_id == company.id
        assert [e.name for e in snapshot.equipment] == ['Pump']
        assert snapshot.work_orders == []

    def test_store_error_propagates(self, now):
        class BrokenStore:
            def list_equipment(self, tenant_id):
                raise RuntimeError('down')

            def list_work_orders(self, tenant_id):
                return []

        with pytest.raises(RuntimeError):
            load_tenant_snapshot(BrokenStore(), 'tenant-1')


class TestViewModels:
    """Tests for the screen view builders."""

    def test_quick_stats(self, now):
        snapshot = _snapshot(
            equipment=[make_equipment('EQ-1'), make_equipment('EQ-2')],
            orders=[make_order('WO-1', opened_at=now - timedelta(days=10))],
        )

        data = build_quick_stats(snapshot, now)

        assert data['total_equipment'] == 2
        assert data['active_orders'] == 1
        assert data['overdue_orders'] == 1

    def test_health_check(self, now):
        snapshot = _snapshot(equipment=[
            make_equipment('EQ-1', installed_days_ago=60),
            make_equipment('EQ-2', installed_days_ago=200),
        ])

        data = build_health_check(snapshot, now)

        assert data['fleet_health_score'] == 80.0
        assert [e['status'] for e in data['equipment']] == ['healthy', 'critical']

    def test_health_check_empty_fleet(self, now):
        assert build_health_check(_snapshot(), now) == {'fleet_health_score': 0, 'equipment': []}

    def test_reports(self, now):
        snapshot = _snapshot(
            equipment=[make_equipment('EQ-1')],
            orders=[completed_order('WO-1', completed_days_ago=3, hours=6)],
        )

        data = build_reports(snapshot, now)

        assert data['reliability']['mtbf_hours'] == 720.0
        assert data['reliability']['mttr_hours'] == 6.0
        assert data['equipment_failures'] == [{'equipment_name': 'Equipment EQ-1', 'failure_count': 1}]
        assert data['technician_performance'][0]['name'] == 'Joao Silva'
        assert data['generated_at'] == now.isoformat()

    def test_technicians_with_search(self, now):
        snapshot = _snapshot(orders=[
            make_order('WO-1', technician='Joao Silva'),
            make_order('WO-2', technician='Ana Souza', tax_id='52998224725'),
        ])

        data = build_technicians(snapshot, now, search='ana')

        assert data['count'] == 1
        assert data['technicians'][0]['tax_id'] == '52998224725'


class TestAlerts:
    """Tests for build_alerts."""

    def test_all_clear(self, now):
        snapshot = _snapshot(equipment=[make_equipment(installed_days_ago=30)])

        alerts = build_alerts(snapshot, now)

        assert [a.id for a in alerts] == ['all-clear']
        assert alerts[0].severity == AlertSeverity.INFO

    def test_empty_tenant_is_all_clear(self, now):
        assert [a.id for a in build_alerts(_snapshot(), now)] == ['all-clear']

    def test_overdue_preventive_and_critical(self, now):
        snapshot = _snapshot(equipment=[make_equipment('EQ-9', installed_days_ago=200)])

        alerts = {a.id: a for a in build_alerts(snapshot, now)}

        assert set(alerts) == {'preventive-overdue', 'critical-EQ-9'}
        assert alerts['critical-EQ-9'].severity == AlertSeverity.ERROR
        assert alerts['preventive-overdue'].to_dict()['type'] == 'warning'

    def test_overdue_orders(self, now):
        snapshot = _snapshot(
            equipment=[make_equipment(installed_days_ago=30)],
            orders=[make_order('WO-1', maintenance_type=MaintenanceType.PREVENTIVE,
                               opened_at=now - timedelta(days=12))],
        )

        alerts = build_alerts(snapshot, now)

        assert [a.id for a in alerts] == ['orders-overdue']
        assert '7 days' in alerts[0].description

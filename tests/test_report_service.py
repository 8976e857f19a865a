"""
Unit tests for PDF and CSV report generation.
"""
import csv
import io

from factories import completed_order, make_equipment, make_order
from pcm.models import Company
from pcm.services.dashboard_service import TenantSnapshot
from pcm.services.metrics_service import evaluate_fleet_health
from pcm.services.report_service import HEALTH_CSV_COLUMNS, ReportService, export_equipment_health_csv


def _company():
    return Company(id='tenant-1', name='Acme Industrial', manager_email='manager@acme.example')


class TestMaintenanceReport:
    """Tests for ReportService.generate_maintenance_report."""

    def test_generates_pdf(self, now):
        snapshot = TenantSnapshot(
            tenant_id='tenant-1',
            equipment=[make_equipment('EQ-1'), make_equipment('EQ-2', installed_days_ago=30)],
            work_orders=[
                completed_order('WO-1', completed_days_ago=4, hours=5),
                make_order('WO-2', equipment_id='EQ-2', technician='Ana Souza'),
            ],
        )

        pdf = ReportService().generate_maintenance_report(_company(), snapshot, now)

        assert pdf.startswith(b'%PDF')

    def test_generates_pdf_for_empty_tenant(self, now):
        snapshot = TenantSnapshot(tenant_id='tenant-1', equipment=[], work_orders=[])

        pdf = ReportService().generate_maintenance_report(_company(), snapshot, now)

        assert pdf.startswith(b'%PDF')


class TestEquipmentHealthCsv:
    """Tests for export_equipment_health_csv."""

    def test_header_and_rows(self, now):
        healths = evaluate_fleet_health(
            [make_equipment('EQ-1', installed_days_ago=60, name='Compressor A1')], [], now
        )

        rows = list(csv.DictReader(io.StringIO(export_equipment_health_csv(healths))))

        assert len(rows) == 1
        assert list(rows[0].keys()) == HEALTH_CSV_COLUMNS
        assert rows[0]['equipment_name'] == 'Compressor A1'
        assert rows[0]['health_score'] == '100'
        assert rows[0]['last_maintenance'] == ''

    def test_empty_fleet_has_header_only(self):
        content = export_equipment_health_csv([])
        assert content.strip() == ','.join(HEALTH_CSV_COLUMNS)

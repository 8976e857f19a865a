"""Flask CLI commands: schema creation and demo data seeding."""
import logging
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from pcm.database import get_database_info
from pcm.models import EquipmentInput, MaintenanceType, WorkOrderInput, WorkOrderStatus

logger = logging.getLogger(__name__)

# (name, location, maintenance type, installed days ago)
DEMO_EQUIPMENT = [
    ('Compressor A1', 'Plant 1 - Utilities', MaintenanceType.PREVENTIVE, 420),
    ('Pump B2', 'Plant 1 - Cooling', MaintenanceType.CORRECTIVE, 250),
    ('Motor C3', 'Plant 2 - Line 3', MaintenanceType.PREVENTIVE, 180),
    ('Fan D4', 'Plant 2 - HVAC', MaintenanceType.PREVENTIVE, 95),
]

# (equipment index, technician, tax id, type, status, opened days ago, hours to complete)
DEMO_WORK_ORDERS = [
    (0, 'Joao Silva', '123.456.789-09', MaintenanceType.CORRECTIVE, WorkOrderStatus.COMPLETED, 40, 6),
    (0, 'Maria Santos', '987.654.321-00', MaintenanceType.PREVENTIVE, WorkOrderStatus.COMPLETED, 20, 3),
    (1, 'Pedro Costa', '111.444.777-35', MaintenanceType.CORRECTIVE, WorkOrderStatus.COMPLETED, 75, 12),
    (1, 'Pedro Costa', '111.444.777-35', MaintenanceType.CORRECTIVE, WorkOrderStatus.COMPLETED, 30, 5),
    (1, 'Joao Silva', '123.456.789-09', MaintenanceType.CORRECTIVE, WorkOrderStatus.IN_PROGRESS, 2, None),
    (2, 'Ana Souza', '529.982.247-25', MaintenanceType.PREVENTIVE, WorkOrderStatus.OPEN, 10, None),
    (3, 'Maria Santos', '987.654.321-00', MaintenanceType.PREVENTIVE, WorkOrderStatus.CANCELLED, 5, None),
]


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the database schema."""
    store = current_app.extensions['pcm.store']
    store.initialize()
    click.echo(f"Initialized database: {get_database_info(store.db_path)['path']}")


@click.command('seed-demo')
@with_appcontext
@click.argument('email')
def seed_demo_command(email):
    """Seed demo equipment and work orders for the company managed by EMAIL."""
    store = current_app.extensions['pcm.store']
    now = current_app.extensions['pcm.clock']()

    company = store.get_company_by_email(email)
    if company is None:
        raise click.ClickException(f"No company registered for {email}")

    equipment = []
    for name, location, maintenance_type, age_days in DEMO_EQUIPMENT:
        equipment.append(store.create_equipment(company.id, EquipmentInput.model_validate({
            'name': name,
            'location': location,
            'maintenance_type': maintenance_type,
            'installed_at': now - timedelta(days=age_days),
        }, context={'now': now})))

    for index, technician, tax_id, maintenance_type, status, opened_ago, hours in DEMO_WORK_ORDERS:
        opened_at = now - timedelta(days=opened_ago)
        store.create_work_order(company.id, WorkOrderInput(
            equipment_id=equipment[index].id,
            technician_name=technician,
            technician_tax_id=tax_id,
            opened_at=opened_at,
            completed_at=opened_at + timedelta(hours=hours) if hours is not None else None,
            maintenance_type=maintenance_type,
            downtime_hours=hours or 0,
            status=status,
        ))

    logger.info(f"Demo data seeded for tenant {company.id}")
    click.echo(f"Seeded {len(equipment)} equipment and {len(DEMO_WORK_ORDERS)} work orders for {company.name}")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)

"""
Tenant-scoped record store for companies, equipment and work orders.

A RecordStore is constructed once per process with a database path and
passed to the application factory. Every equipment and work-order
operation takes the tenant id; records of other tenants behave as if they
did not exist.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pcm.database import get_db_connection, init_db
from pcm.models import (
    Company,
    CompanyRegistration,
    Equipment,
    EquipmentInput,
    WorkOrder,
    WorkOrderInput,
    TERMINAL_STATUSES,
)

logger = logging.getLogger(__name__)


class RecordNotFoundError(Exception):
    """Raised when a record does not exist for the given tenant."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class InvalidReferenceError(Exception):
    """Raised when a work order references equipment the tenant does not own."""


class InvalidTransitionError(Exception):
    """Raised when an update tries to leave a terminal work-order status."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class RecordStore:
    """SQLite-backed store. Opens one connection per operation."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def initialize(self):
        init_db(self.db_path)

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def get_company(self, company_id: str) -> Optional[Company]:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
        return Company.model_validate(dict(row)) if row else None

    def get_company_by_email(self, email: str) -> Optional[Company]:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM companies WHERE manager_email = ?",
                (email.strip().lower(),)
            ).fetchone()
        return Company.model_validate(dict(row)) if row else None

    def create_company(self, registration: CompanyRegistration) -> Company:
        company = Company(
            id=str(uuid.uuid4()),
            name=registration.name,
            manager_email=registration.manager_email,
            plan=registration.plan,
            created_at=datetime.now(timezone.utc),
        )
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """INSERT INTO companies (id, name, manager_email, plan, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (company.id, company.name, company.manager_email,
                 company.plan.value, _iso(company.created_at))
            )
        logger.info(f"Company created: {company.id} ({company.manager_email})")
        return company

    # ------------------------------------------------------------------
    # Equipment
    # ------------------------------------------------------------------

    def list_equipment(self, tenant_id: str) -> List[Equipment]:
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM equipment WHERE tenant_id = ? ORDER BY created_at DESC",
                (tenant_id,)
            ).fetchall()
        return [Equipment.model_validate(dict(row)) for row in rows]

    def get_equipment(self, tenant_id: str, equipment_id: str) -> Equipment:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM equipment WHERE id = ? AND tenant_id = ?",
                (equipment_id, tenant_id)
            ).fetchone()
        if row is None:
            raise RecordNotFoundError('Equipment', equipment_id)
        return Equipment.model_validate(dict(row))

    def create_equipment(self, tenant_id: str, data: EquipmentInput) -> Equipment:
        equipment_id = str(uuid.uuid4())
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """INSERT INTO equipment
                   (id, tenant_id, name, location, maintenance_type, installed_at, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (equipment_id, tenant_id, data.name, data.location,
                 data.maintenance_type.value, _iso(data.installed_at), _now_iso())
            )
        logger.info(f"Equipment created: {equipment_id} (tenant {tenant_id})")
        return self.get_equipment(tenant_id, equipment_id)

    def update_equipment(self, tenant_id: str, equipment_id: str, data: EquipmentInput) -> Equipment:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """UPDATE equipment
                   SET name = ?, location = ?, maintenance_type = ?, installed_at = ?
                   WHERE id = ? AND tenant_id = ?""",
                (data.name, data.location, data.maintenance_type.value,
                 _iso(data.installed_at), equipment_id, tenant_id)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError('Equipment', equipment_id)
            # keep the denormalized name on work orders in sync
            conn.execute(
                "UPDATE work_orders SET equipment_name = ? WHERE equipment_id = ? AND tenant_id = ?",
                (data.name, equipment_id, tenant_id)
            )
        return self.get_equipment(tenant_id, equipment_id)

    def delete_equipment(self, tenant_id: str, equipment_id: str):
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM equipment WHERE id = ? AND tenant_id = ?",
                (equipment_id, tenant_id)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError('Equipment', equipment_id)
        logger.info(f"Equipment deleted: {equipment_id} (tenant {tenant_id})")

    # ------------------------------------------------------------------
    # Work orders
    # ------------------------------------------------------------------

    def list_work_orders(self, tenant_id: str, status: Optional[str] = None) -> List[WorkOrder]:
        with get_db_connection(self.db_path) as conn:
            if status:
                rows = conn.execute(
                    """SELECT * FROM work_orders WHERE tenant_id = ? AND status = ?
                       ORDER BY created_at DESC""",
                    (tenant_id, status)
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM work_orders WHERE tenant_id = ? ORDER BY created_at DESC",
                    (tenant_id,)
                ).fetchall()
        return [WorkOrder.model_validate(dict(row)) for row in rows]

    def get_work_order(self, tenant_id: str, order_id: str) -> WorkOrder:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM work_orders WHERE id = ? AND tenant_id = ?",
                (order_id, tenant_id)
            ).fetchone()
        if row is None:
            raise RecordNotFoundError('Work order', order_id)
        return WorkOrder.model_validate(dict(row))

    def _resolve_equipment_name(self, tenant_id: str, equipment_id: str) -> str:
        try:
            return self.get_equipment(tenant_id, equipment_id).name
        except RecordNotFoundError:
            raise InvalidReferenceError(f"Equipment {equipment_id} does not exist") from None

    def create_work_order(self, tenant_id: str, data: WorkOrderInput) -> WorkOrder:
        equipment_name = self._resolve_equipment_name(tenant_id, data.equipment_id)
        order_id = str(uuid.uuid4())
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """INSERT INTO work_orders
                   (id, tenant_id, equipment_id, equipment_name, technician_name,
                    technician_tax_id, opened_at, completed_at, maintenance_type,
                    downtime_hours, status, notes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (order_id, tenant_id, data.equipment_id, equipment_name,
                 data.technician_name, data.technician_tax_id,
                 _iso(data.opened_at), _iso(data.completed_at),
                 data.maintenance_type.value, data.downtime_hours,
                 data.status.value, data.notes, _now_iso())
            )
        logger.info(f"Work order created: {order_id} (tenant {tenant_id}, status {data.status.value})")
        return self.get_work_order(tenant_id, order_id)

    def update_work_order(self, tenant_id: str, order_id: str, data: WorkOrderInput) -> WorkOrder:
        current = self.get_work_order(tenant_id, order_id)
        if current.status in TERMINAL_STATUSES and data.status != current.status:
            raise InvalidTransitionError(
                f"Work order {order_id} is {current.status.value} and cannot move to {data.status.value}"
            )

        equipment_name = self._resolve_equipment_name(tenant_id, data.equipment_id)
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """UPDATE work_orders
                   SET equipment_id = ?, equipment_name = ?, technician_name = ?,
                       technician_tax_id = ?, opened_at = ?, completed_at = ?,
                       maintenance_type = ?, downtime_hours = ?, status = ?, notes = ?
                   WHERE id = ? AND tenant_id = ?""",
                (data.equipment_id, equipment_name, data.technician_name,
                 data.technician_tax_id, _iso(data.opened_at), _iso(data.completed_at),
                 data.maintenance_type.value, data.downtime_hours, data.status.value,
                 data.notes, order_id, tenant_id)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError('Work order', order_id)
        logger.info(f"Work order updated: {order_id} (status {data.status.value})")
        return self.get_work_order(tenant_id, order_id)

    def delete_work_order(self, tenant_id: str, order_id: str):
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM work_orders WHERE id = ? AND tenant_id = ?",
                (order_id, tenant_id)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError('Work order', order_id)
        logger.info(f"Work order deleted: {order_id} (tenant {tenant_id})")

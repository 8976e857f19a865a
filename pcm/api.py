import logging
from functools import partial

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError

from pcm.auth import get_current_tenant_id, get_current_user, get_token_from_header, require_auth
from pcm.config import thresholds_from_config
from pcm.models import CompanyRegistration, EquipmentInput, WorkOrderInput
from pcm.services import metrics_service
from pcm.services.alert_service import build_alerts
from pcm.services.company_service import AuthenticationError, CompanyService, RegistrationError
from pcm.services.dashboard_service import (
    Ready,
    ScreenLoader,
    build_health_check,
    build_quick_stats,
    build_reports,
    build_technicians,
    load_tenant_snapshot,
)
from pcm.services.report_service import ReportService, export_equipment_health_csv
from pcm.store import InvalidReferenceError, InvalidTransitionError, RecordNotFoundError
from pcm.validators import (
    validate_login_request,
    validate_record_id,
    validate_search_term,
    validate_status_filter,
    validate_tax_id,
)

logger = logging.getLogger(__name__)

api_blueprint = Blueprint('api', __name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _store():
    return current_app.extensions['pcm.store']


def _company_service() -> CompanyService:
    return CompanyService(_store(), current_app.extensions['pcm.identity'])


def _now():
    return current_app.extensions['pcm.clock']()


def _thresholds():
    return thresholds_from_config(current_app.config)


def _error(code: str, message: str, status: int):
    return jsonify({"error": {"code": code, "message": message}}), status


def _validation_message(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in e.errors()
    )


def _internal_error(e: Exception):
    return _error("INTERNAL_SERVER_ERROR", f"An unexpected error occurred: {str(e)}", 500)


def _parse_equipment(data) -> EquipmentInput:
    """Installation dates are checked against the application clock."""
    return EquipmentInput.model_validate(data, context={'now': _now()})


def _render_screen(build):
    """Load the tenant snapshot through a screen loader and render its state."""
    store = _store()
    tenant_id = get_current_tenant_id()
    loader = ScreenLoader(lambda: load_tenant_snapshot(store, tenant_id), build)
    state = loader.load(_now())
    loader.dispose()
    if isinstance(state, Ready):
        return jsonify(state.data), 200
    return _error("DATA_UNAVAILABLE", "Could not load maintenance data", 502)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@api_blueprint.route('/auth/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return _error("BAD_REQUEST", "Invalid JSON body", 400)
    try:
        registration = CompanyRegistration.model_validate(data)
        company = _company_service().register_company(registration)
        return jsonify(company.model_dump(mode='json')), 201
    except ValidationError as e:
        return _error("VALIDATION_ERROR", _validation_message(e), 400)
    except RegistrationError as e:
        status = 409 if e.code == 'EMAIL_IN_USE' else 400
        return _error(e.code, e.message, status)
    except Exception as e:
        current_app.logger.exception("Company registration failed.")
        return _internal_error(e)


@api_blueprint.route('/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    is_valid, error = validate_login_request(data)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        result = _company_service().login(data['email'], data['password'])
        return jsonify(result.to_dict()), 200
    except AuthenticationError as e:
        return _error(e.code, e.message, 401)
    except Exception as e:
        current_app.logger.exception("Login failed.")
        return _internal_error(e)


@api_blueprint.route('/auth/logout', methods=['POST'])
@require_auth
def logout():
    _company_service().logout(get_token_from_header())
    return jsonify({"status": "ok"}), 200


@api_blueprint.route('/auth/me', methods=['GET'])
@require_auth
def current_company():
    company = _store().get_company(get_current_tenant_id())
    if company is None:
        return _error("NOT_FOUND", "Company not found", 404)
    return jsonify({
        'email': get_current_user()['email'],
        'company': company.model_dump(mode='json'),
    }), 200


# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------

@api_blueprint.route('/equipment', methods=['GET'])
@require_auth
def list_equipment():
    try:
        equipment = _store().list_equipment(get_current_tenant_id())
        return jsonify({"value": [eq.model_dump(mode='json') for eq in equipment]}), 200
    except Exception as e:
        current_app.logger.exception("Error fetching equipment.")
        return _internal_error(e)


@api_blueprint.route('/equipment', methods=['POST'])
@require_auth
def create_equipment():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return _error("BAD_REQUEST", "Invalid JSON body", 400)
    try:
        equipment = _store().create_equipment(get_current_tenant_id(), _parse_equipment(data))
        return jsonify(equipment.model_dump(mode='json')), 201
    except ValidationError as e:
        return _error("VALIDATION_ERROR", _validation_message(e), 400)
    except Exception as e:
        current_app.logger.exception("Error creating equipment.")
        return _internal_error(e)


@api_blueprint.route('/equipment/<equipment_id>', methods=['GET'])
@require_auth
def get_equipment(equipment_id):
    is_valid, error = validate_record_id(equipment_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        equipment = _store().get_equipment(get_current_tenant_id(), equipment_id)
        return jsonify(equipment.model_dump(mode='json')), 200
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)


@api_blueprint.route('/equipment/<equipment_id>', methods=['PUT'])
@require_auth
def update_equipment(equipment_id):
    is_valid, error = validate_record_id(equipment_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return _error("BAD_REQUEST", "Invalid JSON body", 400)
    try:
        equipment = _store().update_equipment(
            get_current_tenant_id(), equipment_id, _parse_equipment(data)
        )
        return jsonify(equipment.model_dump(mode='json')), 200
    except ValidationError as e:
        return _error("VALIDATION_ERROR", _validation_message(e), 400)
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)
    except Exception as e:
        current_app.logger.exception(f"Error updating equipment {equipment_id}.")
        return _internal_error(e)


@api_blueprint.route('/equipment/<equipment_id>', methods=['DELETE'])
@require_auth
def delete_equipment(equipment_id):
    is_valid, error = validate_record_id(equipment_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        _store().delete_equipment(get_current_tenant_id(), equipment_id)
        return jsonify({"status": "deleted"}), 200
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)


# ---------------------------------------------------------------------------
# Work orders
# ---------------------------------------------------------------------------

def _parse_work_order(data):
    is_valid, error = validate_tax_id(data.get('technician_tax_id'))
    if not is_valid:
        raise ValueError(error)
    return WorkOrderInput.model_validate(data)


@api_blueprint.route('/work-orders', methods=['GET'])
@require_auth
def list_work_orders():
    status = request.args.get('status')
    is_valid, error = validate_status_filter(status)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        orders = _store().list_work_orders(get_current_tenant_id(), status=status or None)
        return jsonify({"value": [o.model_dump(mode='json') for o in orders]}), 200
    except Exception as e:
        current_app.logger.exception("Error fetching work orders.")
        return _internal_error(e)


@api_blueprint.route('/work-orders', methods=['POST'])
@require_auth
def create_work_order():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return _error("BAD_REQUEST", "Invalid JSON body", 400)
    try:
        order = _store().create_work_order(get_current_tenant_id(), _parse_work_order(data))
        return jsonify(order.model_dump(mode='json')), 201
    except ValidationError as e:
        return _error("VALIDATION_ERROR", _validation_message(e), 400)
    except ValueError as e:
        return _error("VALIDATION_ERROR", str(e), 400)
    except InvalidReferenceError as e:
        return _error("INVALID_EQUIPMENT", str(e), 400)
    except Exception as e:
        current_app.logger.exception("Error creating work order.")
        return _internal_error(e)


@api_blueprint.route('/work-orders/<order_id>', methods=['GET'])
@require_auth
def get_work_order(order_id):
    is_valid, error = validate_record_id(order_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        order = _store().get_work_order(get_current_tenant_id(), order_id)
        return jsonify(order.model_dump(mode='json')), 200
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)


@api_blueprint.route('/work-orders/<order_id>', methods=['PUT'])
@require_auth
def update_work_order(order_id):
    is_valid, error = validate_record_id(order_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return _error("BAD_REQUEST", "Invalid JSON body", 400)
    try:
        order = _store().update_work_order(get_current_tenant_id(), order_id, _parse_work_order(data))
        return jsonify(order.model_dump(mode='json')), 200
    except ValidationError as e:
        return _error("VALIDATION_ERROR", _validation_message(e), 400)
    except ValueError as e:
        return _error("VALIDATION_ERROR", str(e), 400)
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)
    except InvalidReferenceError as e:
        return _error("INVALID_EQUIPMENT", str(e), 400)
    except InvalidTransitionError as e:
        return _error("INVALID_TRANSITION", str(e), 409)
    except Exception as e:
        current_app.logger.exception(f"Error updating work order {order_id}.")
        return _internal_error(e)


@api_blueprint.route('/work-orders/<order_id>', methods=['DELETE'])
@require_auth
def delete_work_order(order_id):
    is_valid, error = validate_record_id(order_id)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    try:
        _store().delete_work_order(get_current_tenant_id(), order_id)
        return jsonify({"status": "deleted"}), 200
    except RecordNotFoundError as e:
        return _error("NOT_FOUND", str(e), 404)


# ---------------------------------------------------------------------------
# Dashboard, technicians and reports
# ---------------------------------------------------------------------------

@api_blueprint.route('/dashboard/stats', methods=['GET'])
@require_auth
def dashboard_stats():
    return _render_screen(partial(build_quick_stats, thresholds=_thresholds()))


@api_blueprint.route('/dashboard/health', methods=['GET'])
@require_auth
def dashboard_health():
    return _render_screen(partial(build_health_check, thresholds=_thresholds()))


@api_blueprint.route('/dashboard/alerts', methods=['GET'])
@require_auth
def dashboard_alerts():
    thresholds = _thresholds()

    def build(snapshot, now):
        return {"value": [a.to_dict() for a in build_alerts(snapshot, now, thresholds)]}

    return _render_screen(build)


@api_blueprint.route('/technicians', methods=['GET'])
@require_auth
def technicians():
    search = request.args.get('q')
    is_valid, error = validate_search_term(search)
    if not is_valid:
        return _error("BAD_REQUEST", error, 400)
    return _render_screen(partial(build_technicians, search=search))


@api_blueprint.route('/reports', methods=['GET'])
@require_auth
def reports():
    return _render_screen(partial(build_reports, thresholds=_thresholds()))


@api_blueprint.route('/reports/pdf', methods=['GET'])
@require_auth
def report_pdf():
    tenant_id = get_current_tenant_id()
    try:
        company = _store().get_company(tenant_id)
        if company is None:
            return _error("NOT_FOUND", "Company not found", 404)
        snapshot = load_tenant_snapshot(_store(), tenant_id)
        pdf = ReportService().generate_maintenance_report(company, snapshot, _now(), _thresholds())
        return Response(
            pdf,
            mimetype='application/pdf',
            headers={'Content-Disposition': 'attachment; filename=maintenance-report.pdf'}
        )
    except Exception as e:
        current_app.logger.exception("Error generating PDF report.")
        return _internal_error(e)


@api_blueprint.route('/reports/equipment-health.csv', methods=['GET'])
@require_auth
def report_equipment_health_csv():
    try:
        snapshot = load_tenant_snapshot(_store(), get_current_tenant_id())
        healths = metrics_service.evaluate_fleet_health(
            snapshot.equipment, snapshot.work_orders, _now(), _thresholds()
        )
        return Response(
            export_equipment_health_csv(healths),
            mimetype='text/csv',
            headers={'Content-Disposition': 'attachment; filename=equipment-health.csv'}
        )
    except Exception as e:
        current_app.logger.exception("Error exporting equipment health.")
        return _internal_error(e)

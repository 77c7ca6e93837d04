from flask import Blueprint, request, jsonify, current_app

from services.container import get_services
from services.errors import InvalidInput
from services.utils import json_object, parse_datetime, validate_json

slot_bp = Blueprint('slot', __name__)


@slot_bp.route('/slots', methods=['POST'])
def create_slot():
    data = json_object(request.get_json(silent=True))
    slot = get_services().slots.create(data.get('slot_number'))
    return jsonify(slot.to_dict()), 201


@slot_bp.route('/slots', methods=['GET'])
def list_slots():
    slots = get_services().slots.list_all()
    return jsonify([s.to_dict() for s in slots]), 200


@slot_bp.route('/slots/available', methods=['GET'])
def list_physically_free_slots():
    slots = get_services().slots.list_physically_free()
    return jsonify([s.to_dict() for s in slots]), 200


@slot_bp.route('/slots/number/<string:slot_number>', methods=['GET'])
def get_slot_by_number(slot_number):
    slot = get_services().slots.get_by_number(slot_number)
    return jsonify(slot.to_dict()), 200


@slot_bp.route('/slots/<int:slot_id>', methods=['GET'])
def get_slot(slot_id):
    slot = get_services().slots.get(slot_id)
    return jsonify(slot.to_dict()), 200


@slot_bp.route('/slots/<int:slot_id>/occupy', methods=['PATCH'])
def set_slot_occupied(slot_id):
    """Admin open/close override of the physical occupancy flag."""
    data = json_object(request.get_json(silent=True))
    slot = get_services().slots.set_occupied(slot_id, data.get('occupied'))
    current_app.logger.info(f"Admin set slot {slot_id} occupied={slot.is_occupied}")
    return jsonify(slot.to_dict()), 200


@slot_bp.route('/slots/search', methods=['POST'])
def search_available_slots():
    data = json_object(request.get_json(silent=True))
    missing_fields = validate_json(data, ['startTime', 'endTime'])
    if missing_fields:
        raise InvalidInput(f"Missing fields: {', '.join(missing_fields)}")

    slots = get_services().availability.search(
        parse_datetime(data['startTime'], 'startTime'),
        parse_datetime(data['endTime'], 'endTime'),
    )
    return jsonify([s.to_dict() for s in slots]), 200

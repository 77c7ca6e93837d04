from flask import Blueprint, request, jsonify, current_app

from services.container import get_services
from services.errors import InvalidInput, NotFound
from services.utils import json_object, parse_datetime, validate_json

booking_bp = Blueprint('booking', __name__)

REQUIRED_BOOKING_FIELDS = ['name', 'email', 'rfIdTagId', 'slotId', 'startTime', 'endTime']


def _slot_id(value):
    if isinstance(value, bool):
        raise InvalidInput("Slot ID must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidInput("Slot ID must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput("Slot ID must be a number")


@booking_bp.route('/bookings', methods=['POST'])
def create_booking():
    data = json_object(request.get_json(silent=True))
    missing_fields = validate_json(data, REQUIRED_BOOKING_FIELDS)
    if missing_fields:
        raise InvalidInput(f"Missing fields: {', '.join(missing_fields)}")

    booking = get_services().bookings.create(
        name=data['name'],
        email=data['email'],
        rfid_tag_id=data['rfIdTagId'],
        slot_id=_slot_id(data['slotId']),
        start_time=parse_datetime(data['startTime'], 'startTime'),
        end_time=parse_datetime(data['endTime'], 'endTime'),
    )
    return jsonify(booking.to_dict()), 201


@booking_bp.route('/bookings', methods=['GET'])
def list_bookings():
    bookings = get_services().bookings.list_all()
    return jsonify([b.to_dict() for b in bookings]), 200


@booking_bp.route('/bookings/<int:booking_id>', methods=['GET'])
def get_booking(booking_id):
    booking = get_services().bookings.get(booking_id)
    return jsonify(booking.to_dict()), 200


@booking_bp.route('/bookings/user/<string:email>', methods=['GET'])
def list_user_bookings(email):
    bookings = get_services().bookings.list_by_email(email)
    return jsonify([b.to_dict() for b in bookings]), 200


@booking_bp.route('/bookings/user/<string:email>/active', methods=['GET'])
def get_active_user_booking(email):
    booking = get_services().bookings.find_active_by_email(email)
    if booking is None:
        raise NotFound(f"No active booking found for {email}")
    return jsonify(booking.to_dict()), 200


@booking_bp.route('/bookings/status/active', methods=['GET'])
def list_active_bookings():
    bookings = get_services().bookings.list_active()
    return jsonify([b.to_dict() for b in bookings]), 200


@booking_bp.route('/bookings/rfid/<string:rfid_tag_id>', methods=['GET'])
def get_booking_by_rfid(rfid_tag_id):
    booking = get_services().rfid.find_relevant(rfid_tag_id)
    return jsonify(booking.to_dict()), 200


@booking_bp.route('/bookings/verify-rfid/<string:rfid_tag_id>', methods=['GET'])
def verify_rfid(rfid_tag_id):
    """Gate pre-check: does this tag have a booking it can use right now?"""
    booking = get_services().rfid.find_relevant(rfid_tag_id)
    return jsonify({'statusCode': 200, 'Name': booking.name}), 200


@booking_bp.route('/bookings/<int:booking_id>/check-in', methods=['PATCH'])
def check_in_booking(booking_id):
    booking = get_services().bookings.check_in(booking_id)
    return jsonify({'message': 'Booking checked in', 'booking': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/complete', methods=['PATCH'])
def complete_booking(booking_id):
    booking = get_services().bookings.complete(booking_id)
    return jsonify({'message': 'Booking marked as completed', 'booking': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>', methods=['DELETE'])
def cancel_booking(booking_id):
    get_services().bookings.cancel(booking_id)
    return jsonify({'message': 'Booking cancelled successfully'}), 200


@booking_bp.route('/bookings/scan-rfid/<string:rfid_tag_id>', methods=['PATCH'])
def scan_rfid(rfid_tag_id):
    result = get_services().rfid.on_scan(rfid_tag_id)
    current_app.logger.info(
        f"Gate scan {rfid_tag_id}: {result.direction.value} for booking {result.booking.id}"
    )
    response = {'statusCode': 200}
    response.update(result.to_gate_response())
    return jsonify(response), 200


@booking_bp.route('/bookings/maintenance/cleanup', methods=['POST'])
def cleanup_expired_bookings():
    expired = get_services().sweeper.sweep()
    return jsonify({
        'message': 'Expired bookings cleanup complete',
        'expired_booking_ids': expired,
    }), 200

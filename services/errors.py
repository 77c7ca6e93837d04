# services/errors.py


class ParkingError(Exception):
    """Base class for business-rule violations surfaced to the caller."""
    status_code = 500
    code = 'parking_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {
            'success': False,
            'error': self.code,
            'message': self.message,
        }


class NotFound(ParkingError):
    status_code = 404
    code = 'not_found'


class InvalidInput(ParkingError):
    status_code = 400
    code = 'invalid_input'


class Conflict(ParkingError):
    status_code = 409
    code = 'conflict'

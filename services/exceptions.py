"""
Service-layer error taxonomy.

Primary operations raise these; the app's error handlers turn them into JSON
responses.  Best-effort side effects never let them escape.
"""


class ServiceError(Exception):
    """Base class for errors a service reports to its caller."""
    status_code = 400
    code = 'service_error'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {'code': self.code, 'message': self.message}
        if self.details:
            body['details'] = self.details
        return body


class NotFoundError(ServiceError):
    status_code = 404
    code = 'not_found'

    def __init__(self, resource, resource_id=None):
        message = f'{resource} not found'
        if resource_id is not None:
            message = f'{resource} {resource_id} not found'
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(ServiceError):
    status_code = 400
    code = 'validation_error'

    def __init__(self, message, errors=None):
        super().__init__(message, details=errors)
        self.errors = errors or {}


class AuthenticationError(ServiceError):
    status_code = 401
    code = 'invalid_credentials'

    def __init__(self, message='Invalid email or password', code=None):
        super().__init__(message)
        if code:
            self.code = code


class AccessDeniedError(ServiceError):
    status_code = 403
    code = 'access_denied'

    def __init__(self, message='You do not have access to this resource'):
        super().__init__(message)


class DuplicateLicensePlateError(ServiceError):
    status_code = 409
    code = 'duplicate_license_plate'

    def __init__(self, license_plate):
        super().__init__(f'A vehicle with license plate {license_plate} already exists')
        self.license_plate = license_plate


class UnknownReminderTypeError(ValidationError):
    code = 'unknown_reminder_type'

    def __init__(self, reminder_type, known_types=()):
        super().__init__(
            f'Unknown reminder type: {reminder_type}',
            errors={'reminder_type': list(known_types)} if known_types else None,
        )
        self.reminder_type = reminder_type

"""
Typed failures raised by the order & billing engine.

Views translate them into ``{"error": ..., "code": ...}`` responses using
``status_code``.
"""


class OrderEngineError(Exception):
    code = 'error'
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(OrderEngineError):
    code = 'validation_error'
    status_code = 400


class NotFoundError(OrderEngineError):
    code = 'not_found'
    status_code = 404


class InvalidTransitionError(OrderEngineError):
    code = 'invalid_transition'
    status_code = 409


class InsufficientPaymentError(OrderEngineError):
    code = 'insufficient_payment'
    status_code = 402


class AlreadyPaidError(OrderEngineError):
    code = 'already_paid'
    status_code = 409


class PersistenceError(OrderEngineError):
    code = 'persistence_error'
    status_code = 503

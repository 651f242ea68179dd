"""
Error kinds raised by the rental core.

Every service raises one of these synchronously; none is swallowed inside a
transition. The DRF exception handler below renders them with a stable
``category`` so clients can branch on the kind of failure rather than on
message text.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class RentalError(Exception):
    """Base exception for all rental core errors."""

    category = 'error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)

    def as_dict(self):
        data = {
            'status': 'error',
            'category': self.category,
            'message': self.message,
        }
        if self.details is not None:
            data['details'] = self.details
        return data


class NotFoundError(RentalError):
    """Raised when a referenced entity does not exist."""

    category = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} {entity_id} not found",
            details={'entity': entity, 'id': str(entity_id)},
        )


class InvalidTransitionError(RentalError):
    """Raised when an event is not valid for the entity's current state."""

    category = 'invalid_transition'
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity, current_state, event, reason=None):
        self.entity = entity
        self.current_state = current_state
        self.event = event
        super().__init__(
            reason or f"Cannot {event} {entity} in state {current_state}",
            details={'entity': entity, 'state': current_state, 'event': event},
        )


class InvalidStateError(InvalidTransitionError):
    """Raised when a row (document, payment) is not in the state an operation needs."""

    category = 'invalid_state'


class PreconditionError(RentalError):
    """
    Raised when a valid event's guard condition is false.

    ``precondition`` is a stable machine-readable name (e.g. ``driver_not_verified``)
    so the caller can tell the operator which guard failed.
    """

    category = 'precondition_failed'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, precondition, message, **context):
        self.precondition = precondition
        self.context = context
        details = {'precondition': precondition}
        details.update({k: str(v) for k, v in context.items()})
        super().__init__(message, details=details)


class ConflictError(RentalError):
    """Raised when a concurrent write won the race; the caller may retry."""

    category = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class ValidationError(RentalError):
    """Raised on malformed input. ``errors`` maps field names to messages."""

    category = 'validation_error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors, message="Invalid input data."):
        if isinstance(errors, str):
            errors = {'non_field_errors': [errors]}
        self.errors = {k: v if isinstance(v, list) else [v] for k, v in errors.items()}
        super().__init__(message, details=self.errors)


def api_exception_handler(exc, context):
    """
    DRF exception handler: render RentalError subclasses with their category,
    defer everything else to the framework default.
    """
    if isinstance(exc, RentalError):
        view = context.get('view')
        logger.info(
            f"[API] {view.__class__.__name__ if view else 'view'} -> "
            f"{exc.category}: {exc.message}"
        )
        return Response(exc.as_dict(), status=exc.status_code)
    return exception_handler(exc, context)

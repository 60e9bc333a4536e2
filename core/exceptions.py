"""
Error taxonomy for swaps, items, reviews and the impact ledger.

Every error is a DRF ``APIException`` so views can let it propagate and
the REST framework renders the right status code. ``retryable`` marks
infrastructure errors the caller may safely retry; business-rule
violations are never retryable.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SwapServiceError(APIException):
    """Base class for all domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be completed.'
    default_code = 'swap_service_error'
    retryable = False


# ----------------------------------------------------------------------------
# Missing entities
# ----------------------------------------------------------------------------

class EntityNotFound(SwapServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class SwapNotFound(EntityNotFound):
    default_detail = 'Swap not found.'


class ItemNotFound(EntityNotFound):
    default_detail = 'Item not found.'


class ReviewNotFound(EntityNotFound):
    default_detail = 'Review not found.'


class UserNotFound(EntityNotFound):
    default_detail = 'User not found.'


class NotificationNotFound(EntityNotFound):
    default_detail = 'Notification not found.'


# ----------------------------------------------------------------------------
# Authorization
# ----------------------------------------------------------------------------

class Forbidden(SwapServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class NotParticipant(Forbidden):
    default_detail = 'Only participants of this swap may do that.'
    default_code = 'not_participant'


# ----------------------------------------------------------------------------
# Business rules
# ----------------------------------------------------------------------------

class InvalidTransition(SwapServiceError):
    default_detail = 'This status change is not allowed.'
    default_code = 'invalid_transition'


class MissingMeetupDetails(SwapServiceError):
    default_detail = 'Meetup location and time are required to complete a swap.'
    default_code = 'missing_meetup_details'


class DuplicateReview(SwapServiceError):
    default_detail = 'You have already reviewed this swap.'
    default_code = 'duplicate_review'


class SwapNotCompleted(SwapServiceError):
    default_detail = 'You can only review completed swaps.'
    default_code = 'swap_not_completed'


class InvalidCategory(SwapServiceError):
    default_detail = 'Unknown item category.'
    default_code = 'invalid_category'


class InvalidCondition(SwapServiceError):
    default_detail = 'Unknown item condition.'
    default_code = 'invalid_condition'


class ItemUnavailable(SwapServiceError):
    default_detail = 'One or both items are not available for swapping.'
    default_code = 'item_unavailable'


class SelfSwap(SwapServiceError):
    default_detail = 'You cannot swap with yourself.'
    default_code = 'self_swap'


# ----------------------------------------------------------------------------
# Infrastructure (safe to retry, nothing was applied)
# ----------------------------------------------------------------------------

class Conflict(SwapServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource was modified concurrently. Please retry.'
    default_code = 'conflict'
    retryable = True


class Unavailable(SwapServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please retry.'
    default_code = 'unavailable'
    retryable = True


class OperationTimeout(SwapServiceError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = 'The operation timed out. Please retry.'
    default_code = 'timeout'
    retryable = True


_TIMEOUT_MARKERS = ('timeout', 'timed out', 'lock wait')


def translate_operational_error(exc):
    """
    Map a database OperationalError to the retryable taxonomy.

    Args:
        exc: django.db.OperationalError raised by the backend

    Returns:
        SwapServiceError: OperationTimeout for lock waits and timeouts,
        Unavailable for everything else
    """
    message = str(exc).lower()
    if any(marker in message for marker in _TIMEOUT_MARKERS):
        return OperationTimeout()
    return Unavailable()


def api_exception_handler(exc, context):
    """
    DRF exception handler adding ``code`` and ``retryable`` to domain errors.

    Falls back to the stock handler for everything else.
    """
    response = exception_handler(exc, context)

    if response is not None and isinstance(exc, SwapServiceError):
        view = context.get('view')
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: "
            f"{exc.detail}"
        )
        response.data = {
            'detail': str(exc.detail),
            'code': exc.default_code,
            'retryable': exc.retryable,
        }

    return response

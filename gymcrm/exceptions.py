import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

__all__ = [
    'ValidationError',
    'NotFoundError',
    'ConfigurationError',
    'PersistenceError',
    'ReceiptDeliveryError',
    'exception_handler',
]


class NotFoundError(NotFound):
    default_detail = 'Requested record was not found.'
    default_code = 'not_found'


class ConfigurationError(APIException):
    """Blocks an otherwise valid operation until the gym owner fixes their setup."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'Gym configuration is incomplete.'
    default_code = 'configuration_error'


class PersistenceError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'The database could not complete the request.'
    default_code = 'persistence_error'


class ReceiptDeliveryError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The receipt email could not be sent. Try again shortly.'
    default_code = 'receipt_not_sent'


def exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.error(f"Database error in {view.__class__.__name__ if view else 'unknown view'}: {exc}", exc_info=True)
        exc = PersistenceError()
    return drf_exception_handler(exc, context)

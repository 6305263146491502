import logging

from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = _("Ocurrió un error inesperado. Intente nuevamente más tarde.")
INVALID_DATA_MESSAGE = _("Los datos enviados no son válidos.")


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = _("El recurso solicitado no existe.")
    default_code = "not_found"


class ValidationError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = INVALID_DATA_MESSAGE
    default_code = "invalid"


class ConflictError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = _("La operación entra en conflicto con el estado actual.")
    default_code = "conflict"


def _first_message(errors):
    if isinstance(errors, dict):
        for value in errors.values():
            return _first_message(value)
        return None
    if isinstance(errors, (list, tuple)):
        return _first_message(errors[0]) if errors else None
    return str(errors)


def _as_message_payload(data):
    if isinstance(data, dict) and set(data.keys()) == {"detail"}:
        return {"message": str(data["detail"])}
    if isinstance(data, dict) and set(data.keys()) == {"non_field_errors"}:
        return {"message": _first_message(data), "errors": data}
    if isinstance(data, dict):
        return {"message": str(INVALID_DATA_MESSAGE), "errors": data}
    if isinstance(data, list):
        return {"message": _first_message(data) or str(INVALID_DATA_MESSAGE), "errors": data}
    return {"message": str(data)}


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        response.data = _as_message_payload(response.data)
        return response

    view = context.get("view")
    logger.exception(
        "Unhandled error in %s",
        view.__class__.__name__ if view is not None else "unknown view",
    )
    set_rollback()
    return Response(
        {"message": str(GENERIC_ERROR_MESSAGE)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

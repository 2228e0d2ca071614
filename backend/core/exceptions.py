from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


logger = logging.getLogger(__name__)


class ServiceError(exceptions.APIException):
    """Base class for typed business-rule failures.

    `default_code` is the stable code clients branch on; `reason` narrows it
    (e.g. which precondition failed) without relying on the message text.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "L'opération n'a pas pu aboutir."
    default_code = "internal"

    def __init__(self, detail=None, *, reason: str = "", field: str = ""):
        super().__init__(detail=detail, code=self.default_code)
        self.reason = reason
        self.field = field


class Unauthenticated(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentification requise."
    default_code = "unauthenticated"


class PermissionDenied(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Permission refusée."
    default_code = "permission-denied"


class InvalidArgument(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Paramètre invalide."
    default_code = "invalid-argument"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Ressource introuvable."
    default_code = "not-found"


class AlreadyExists(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "La ressource existe déjà."
    default_code = "already-exists"


class FailedPrecondition(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Condition préalable non remplie."
    default_code = "failed-precondition"


class Internal(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Erreur interne."
    default_code = "internal"


def first_validation_error(detail) -> tuple[str, str, str]:
    """Return (field, reason, message) for the first entry of a DRF error tree."""
    path: list[str] = []
    while True:
        if isinstance(detail, dict) and detail:
            key, detail = next(iter(detail.items()))
            if key != "non_field_errors":
                path.append(str(key))
        elif isinstance(detail, list) and detail:
            detail = detail[0]
        else:
            break
    reason = getattr(detail, "code", "") or "invalid"
    return ".".join(path), str(reason), str(detail)


def _error_body(*, code: str, message: str, field: str = "", reason: str = "") -> dict:
    error = {"code": code, "message": message}
    if field:
        error["field"] = field
    if reason:
        error["reason"] = reason
    return {"success": False, "error": error}


def exception_handler(exc, context):
    """Render every API failure as `{"success": false, "error": {...}}`.

    DRF's own exceptions are folded onto the same stable codes so callers only
    ever see the codes declared above.
    """

    if isinstance(exc, ServiceError):
        body = _error_body(code=exc.default_code, message=str(exc.detail), field=exc.field, reason=exc.reason)
        return Response(body, status=exc.status_code)

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        view = context.get("view") if isinstance(context, dict) else None
        logger.exception("Unhandled error in %s", type(view).__name__ if view is not None else "-")
        body = _error_body(code=Internal.default_code, message=str(Internal.default_detail))
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.ValidationError):
        field, reason, message = first_validation_error(exc.detail)
        response.data = _error_body(code=InvalidArgument.default_code, message=message, field=field, reason=reason)
    elif isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        response.data = _error_body(code=Unauthenticated.default_code, message=str(exc.detail))
    elif isinstance(exc, exceptions.PermissionDenied):
        response.data = _error_body(code=PermissionDenied.default_code, message=str(exc.detail))
    elif isinstance(exc, exceptions.NotFound):
        response.data = _error_body(code=NotFound.default_code, message=str(exc.detail))
    elif isinstance(exc, (exceptions.ParseError, exceptions.UnsupportedMediaType)):
        response.data = _error_body(code=InvalidArgument.default_code, message=str(exc.detail))
    else:
        response.data = _error_body(code=str(getattr(exc, "default_code", "error")), message=str(exc.detail))
    return response

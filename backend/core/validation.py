from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .exceptions import InvalidArgument, first_validation_error


def validate_payload(serializer_class: type[serializers.Serializer], data: Any, **kwargs) -> dict:
    """Run a per-operation input serializer and return its coerced data.

    Only the first violation is reported, as `InvalidArgument` carrying the
    offending field and the serializer's error code as `reason`.
    """

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidArgument("Le contenu de la requête doit être un objet.", reason="invalid_payload")

    serializer = serializer_class(data=data, **kwargs)
    if not serializer.is_valid():
        field, reason, message = first_validation_error(serializer.errors)
        raise InvalidArgument(message, field=field, reason=reason)
    return dict(serializer.validated_data)


def coerce_id(value: Any, field: str) -> int:
    """Coerce a path/payload identifier to a positive int or fail as InvalidArgument."""
    if isinstance(value, bool):
        raise InvalidArgument("Identifiant invalide.", field=field, reason="invalid")
    try:
        coerced = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidArgument("Identifiant invalide.", field=field, reason="invalid") from None
    if coerced < 1:
        raise InvalidArgument("Identifiant invalide.", field=field, reason="invalid")
    return coerced

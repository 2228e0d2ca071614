from __future__ import annotations

from rest_framework import status as http_status
from rest_framework.response import Response


def success(data=None, *, status: int = http_status.HTTP_200_OK) -> Response:
    return Response({"success": True, "data": data}, status=status)

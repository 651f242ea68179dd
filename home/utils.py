from rest_framework import status as http_status
from rest_framework.response import Response


def success_response(message, data=None, warnings=None, status=http_status.HTTP_200_OK):
    """Standard success envelope; ``warnings`` carries non-fatal notification failures."""
    body = {
        "status": "success",
        "message": message,
        "data": data,
    }
    if warnings:
        body["warnings"] = warnings
    return Response(body, status=status)

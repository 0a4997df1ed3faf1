"""Custom middleware helpers for the storefront backend."""

from __future__ import annotations

import uuid
from typing import Callable

REQUEST_ID_HEADER = "HTTP_X_REQUEST_ID"


class RequestCorrelationMiddleware:
    """Attach a correlation id to every request and echo it back in the response.

    Upstream proxies may already send ``X-Request-ID``; when they do we keep
    their value so audit entries and access logs line up across services.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request):
        correlation_id = request.META.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.correlation_id = correlation_id  # type: ignore[attr-defined]
        response = self.get_response(request)
        response["X-Request-ID"] = correlation_id
        return response


class JWTCSRFBypassMiddleware:
    """Skip CSRF enforcement for stateless JWT authenticated requests.

    The admin and storefront APIs authenticate with ``Authorization: Bearer``
    headers, so there is no cookie for a cross-site request to ride on.
    Session based endpoints (the Django admin) keep their CSRF protection.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request):
        authorization = request.META.get("HTTP_AUTHORIZATION", "")
        if authorization.lower().startswith("bearer "):
            request._dont_enforce_csrf_checks = True  # type: ignore[attr-defined]
            request.META.setdefault("CSRF_SKIP_REASON", "jwt-bearer")
        return self.get_response(request)

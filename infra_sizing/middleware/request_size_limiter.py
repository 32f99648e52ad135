"""
Request size limiting middleware for FastAPI.
Protects the calculation endpoints from oversized payloads.
"""
from typing import Any, Dict, Set, Optional
import json
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from infra_sizing.core.config import config

logger = logging.getLogger(__name__)


# Largest number of custom yearly growth rates, add-on selections or VM roles accepted
MAX_LIST_ENTRIES = 50

# Endpoints that require size limiting
PROTECTED_ENDPOINTS: Set[str] = {
    "/api/sizing",
    "/api/pricing",
    "/api/growth",
    "/api/vm/sizing",
    "/api/vm/growth",
}


def _too_large(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={
            "status": "error",
            "error": "request_too_large",
            "message": message,
        }
    )


class RequestSizeLimiterMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for request size limiting.

    Applies size limits only to configured endpoints.
    Other routes pass through untouched.
    """

    def __init__(self, app: ASGIApp, max_body_size: Optional[int] = None):
        super().__init__(app)
        self.max_body_size = max_body_size or config.MAX_REQUEST_BODY_SIZE

    async def dispatch(self, request: Request, call_next):
        """
        Process request and apply size limits if applicable.

        Args:
            request: FastAPI request object
            call_next: Next middleware or route handler

        Returns:
            Response object
        """
        path = request.url.path
        if path not in PROTECTED_ENDPOINTS:
            return await call_next(request)

        limit_message = f"Request body size exceeds allowed limit of {self.max_body_size} bytes."

        content_length = request.headers.get("Content-Length")
        if content_length:
            try:
                if int(content_length) > self.max_body_size:
                    logger.info(
                        f"Request body size exceeded for {path}: {content_length} bytes "
                        f"(limit: {self.max_body_size})"
                    )
                    return _too_large(limit_message)
            except ValueError:
                # Invalid Content-Length header, fall back to the body length
                pass

        body_bytes = await request.body()
        if len(body_bytes) > self.max_body_size:
            logger.info(
                f"Request body size exceeded for {path}: {len(body_bytes)} bytes "
                f"(limit: {self.max_body_size})"
            )
            return _too_large(limit_message)

        if body_bytes:
            try:
                body_json = json.loads(body_bytes.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError):
                # Let FastAPI report malformed JSON
                body_json = None
            if isinstance(body_json, dict):
                validation_error = self._validate_payload(path, body_json)
                if validation_error:
                    logger.info(f"Payload validation failed for {path}: {validation_error}")
                    return _too_large(validation_error)

        return await call_next(request)

    def _validate_payload(self, path: str, body_json: Dict[str, Any]) -> Optional[str]:
        """
        Validate payload-specific constraints based on endpoint.

        Returns:
            Error message if validation fails, None if valid
        """
        if path == "/api/sizing":
            return self._validate_sizing(body_json)

        if path == "/api/pricing":
            sizing = body_json.get("sizing")
            error = self._validate_sizing(sizing) if isinstance(sizing, dict) else None
            return error or self._validate_deployment(body_json.get("deployment"))

        if path == "/api/growth":
            sizing = body_json.get("sizing")
            error = self._validate_sizing(sizing) if isinstance(sizing, dict) else None
            error = error or self._validate_deployment(body_json.get("deployment"))
            return error or self._validate_growth(body_json.get("growth"))

        if path == "/api/vm/sizing":
            return self._validate_vm_sizing(body_json)

        if path == "/api/vm/growth":
            sizing = body_json.get("sizing")
            error = self._validate_vm_sizing(sizing) if isinstance(sizing, dict) else None
            error = error or self._validate_deployment(body_json.get("deployment"))
            return error or self._validate_growth(body_json.get("growth"))

        return None

    @staticmethod
    def _validate_sizing(body_json: Dict[str, Any]) -> Optional[str]:
        environments = body_json.get("environments")
        if isinstance(environments, list) and len(environments) > config.MAX_ENVIRONMENTS:
            return f"Too many environments: {len(environments)} (limit: {config.MAX_ENVIRONMENTS})"
        return None

    @staticmethod
    def _validate_vm_sizing(body_json: Dict[str, Any]) -> Optional[str]:
        environments = body_json.get("environments")
        if not isinstance(environments, dict):
            return None
        if len(environments) > config.MAX_ENVIRONMENTS:
            return f"Too many environments: {len(environments)} (limit: {config.MAX_ENVIRONMENTS})"
        for name, environment in environments.items():
            roles = environment.get("roles") if isinstance(environment, dict) else None
            if isinstance(roles, list) and len(roles) > MAX_LIST_ENTRIES:
                return f"Too many VM roles in {name}: {len(roles)} (limit: {MAX_LIST_ENTRIES})"
        return None

    @staticmethod
    def _validate_deployment(deployment: Any) -> Optional[str]:
        if not isinstance(deployment, dict):
            return None
        for key in ("addons", "services"):
            selections = deployment.get(key)
            if isinstance(selections, dict) and len(selections) > MAX_LIST_ENTRIES:
                return f"Too many {key}: {len(selections)} (limit: {MAX_LIST_ENTRIES})"
        return None

    @staticmethod
    def _validate_growth(growth: Any) -> Optional[str]:
        if not isinstance(growth, dict):
            return None
        rates = growth.get("custom_rates_percent")
        if isinstance(rates, list) and len(rates) > MAX_LIST_ENTRIES:
            return f"Too many custom growth rates: {len(rates)} (limit: {MAX_LIST_ENTRIES})"
        return None

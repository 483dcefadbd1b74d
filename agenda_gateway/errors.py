"""
Error taxonomy for the extraction gateway.

Every failure raised while handling an extraction is a GatewayError subclass.
The HTTP layer converts them to JSON responses through ``to_payload()``:

- ClientInputError: missing or malformed image data (400)
- PayloadTooLargeError: request body above the configured limit (413)
- ConfigurationError: missing credential or bad settings (500)
- UpstreamError / UpstreamTimeoutError: inference endpoint failure (500)
- ContentBlockedError: upstream withheld output (500)
- ResponseParseError: model text is not valid JSON (400, includes raw text)
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ClientInputError(GatewayError):
    status_code = 400


class PayloadTooLargeError(ClientInputError):
    status_code = 413


class ConfigurationError(GatewayError):
    """Server-side misconfiguration. The message never contains secrets."""

    status_code = 500
    note = "Verifica que la API key esté configurada en las variables de entorno"

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "note": self.note}


class UpstreamError(GatewayError):
    """
    Non-success status or transport failure from the inference endpoint.

    Attributes:
        upstream_status: HTTP status returned upstream (None for transport errors)
    """

    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.upstream_status is not None:
            payload["upstreamStatus"] = self.upstream_status
        return payload


class UpstreamTimeoutError(UpstreamError):
    pass


class ContentBlockedError(GatewayError):
    """Upstream declined to produce output (safety filter, no candidates...)."""

    status_code = 500

    def __init__(self, message: str, block_reason: Optional[str] = None):
        super().__init__(message)
        self.block_reason = block_reason


class ResponseParseError(GatewayError):
    """
    Model output could not be turned into patient records.

    The cleaned model text is kept in ``raw_output`` and returned to the
    client as ``raw`` so prompt or model drift can be diagnosed.
    """

    status_code = 400

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "raw": self.raw_output}

"""
Gemini HTTP client wrapper for the generateContent API.
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from agenda_gateway.config import GatewayConfig
from agenda_gateway.errors import ConfigurationError, UpstreamError, UpstreamTimeoutError

# Transport failures worth one more attempt. Timeouts are excluded so a
# hanging upstream is not waited on twice.
RETRYABLE_ERRORS = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


def _upstream_message(response: httpx.Response) -> str:
    """Best-effort error message from an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.reason_phrase
    return response.reason_phrase


class GeminiClient:
    """
    HTTP client for the Gemini generateContent endpoint.

    Provides methods for:
    - Multimodal generation (prompt + one inline image)
    - Model availability checks

    The credential is sent in the x-goog-api-key header so request URLs
    stay free of secrets in logs and exception messages.

    Attributes:
        config: Gateway configuration (credential, model, endpoint, timeout)
        client: Async HTTP client instance
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            config: Gateway configuration
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.config = config
        self.client = httpx.AsyncClient(
            timeout=config.timeout_seconds,
            transport=transport,
        )
        logger.info(
            f"Initialized GeminiClient with endpoint={config.model_endpoint}, "
            f"model={config.model}, timeout={config.timeout_seconds}s"
        )

    @property
    def generate_url(self) -> str:
        return f"{self.config.model_endpoint}/models/{self.config.model}:generateContent"

    def _headers(self) -> Dict[str, str]:
        if not self.config.has_api_key:
            raise ConfigurationError(
                "API key no está configurada. Verifica las variables de entorno."
            )
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key.get_secret_value(),
        }

    async def close(self):
        """Close the HTTP client connection."""
        await self.client.aclose()
        logger.debug("GeminiClient connection closed")

    async def model_available(self) -> bool:
        """
        Check that the configured model is reachable with the configured key.

        Returns:
            True if the model metadata endpoint answers 200, False otherwise
        """
        if not self.config.has_api_key:
            return False
        try:
            response = await self.client.get(
                f"{self.config.model_endpoint}/models/{self.config.model}",
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Gemini model check failed: {e}")
            return False
        if response.status_code != 200:
            logger.warning(f"Gemini model check failed with status {response.status_code}")
            return False
        return True

    async def generate_content(
        self,
        prompt: str,
        image_data: str,
        media_type: str,
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """
        Call generateContent with a text instruction and an inline image.

        Args:
            prompt: Instruction text
            image_data: Base64-encoded image bytes
            media_type: Image MIME type
            temperature: Sampling temperature

        Returns:
            Decoded response envelope with 'candidates', 'promptFeedback', etc.

        Raises:
            ConfigurationError: If no credential is configured
            UpstreamTimeoutError: If the call exceeds the configured timeout
            UpstreamError: On non-success status or transport failure
        """
        headers = self._headers()
        request_data = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": media_type, "data": image_data}},
                    ]
                }
            ],
            "generationConfig": {"temperature": temperature},
        }

        logger.debug(
            f"Calling generateContent: model={self.config.model}, "
            f"media_type={media_type}, image_chars={len(image_data)}"
        )

        attempts = self.config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self.client.post(
                    self.generate_url, json=request_data, headers=headers
                )
                break
            except httpx.TimeoutException as e:
                logger.error(f"generateContent timed out after {self.config.timeout_seconds}s")
                raise UpstreamTimeoutError(
                    f"El modelo no respondió en {self.config.timeout_seconds:g} segundos"
                ) from e
            except RETRYABLE_ERRORS as e:
                if attempt < attempts:
                    logger.warning(
                        f"generateContent transport error (attempt {attempt}/{attempts}): {e}"
                    )
                    continue
                logger.error(f"generateContent failed after {attempts} attempts: {e}")
                raise UpstreamError(f"Error de conexión con el modelo: {e}") from e
            except httpx.HTTPError as e:
                logger.error(f"generateContent failed: {e}")
                raise UpstreamError(f"Error de conexión con el modelo: {e}") from e

        logger.info(f"Gemini API status: {response.status_code}")

        if response.status_code != 200:
            message = _upstream_message(response)
            logger.error(f"generateContent HTTP error: {response.status_code} - {message}")
            raise UpstreamError(
                f"API Error: {message}", upstream_status=response.status_code
            )

        try:
            result = response.json()
        except ValueError as e:
            logger.error(f"generateContent returned non-JSON body: {response.text[:200]}")
            raise UpstreamError(
                "API Error: respuesta no JSON", upstream_status=response.status_code
            ) from e

        if not isinstance(result, dict):
            raise UpstreamError(
                "API Error: respuesta con formato inesperado",
                upstream_status=response.status_code,
            )

        if result.get("error"):
            error = result["error"]
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            logger.error(f"generateContent returned error body: {message}")
            raise UpstreamError(f"API Error: {message}", upstream_status=response.status_code)

        tokens_used = result.get("usageMetadata", {}).get("totalTokenCount", 0)
        logger.info(f"generateContent success: {tokens_used} tokens used")
        logger.debug(f"Gemini API response: {result}")
        return result

"""
Extraction gateway: image submission in, attending patient records out.
"""

from typing import Any, Dict, Optional

from loguru import logger

from agenda_gateway.config import GatewayConfig
from agenda_gateway.errors import ConfigurationError, ContentBlockedError
from agenda_gateway.models import ImageSubmission
from agenda_gateway.services.gemini_client import GeminiClient
from agenda_gateway.utils.images import validate_image
from agenda_gateway.utils.parsers import normalize_records, parse_patient_records, strip_code_fences
from agenda_gateway.utils.prompts import build_extraction_prompt

# finishReason values meaning the output was withheld
BLOCKING_FINISH_REASONS = frozenset(
    {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}
)


def _invalid_response(detail: str) -> ContentBlockedError:
    logger.error(f"Malformed upstream envelope: {detail}")
    return ContentBlockedError(f"Respuesta inválida del modelo: {detail}")


def extract_generated_text(response: Dict[str, Any]) -> str:
    """
    Locate the first generated text segment in a generateContent envelope.

    Args:
        response: Decoded upstream response

    Returns:
        The text of the first candidate's first text part

    Raises:
        ContentBlockedError: If the prompt or candidate was blocked, or the
            envelope is malformed or holds no candidate text
    """
    if not isinstance(response, dict):
        raise _invalid_response("la respuesta no es un objeto")

    feedback = response.get("promptFeedback") or {}
    if not isinstance(feedback, dict):
        raise _invalid_response("promptFeedback no es un objeto")
    block_reason = feedback.get("blockReason")
    if block_reason:
        logger.warning(f"Prompt blocked upstream: {block_reason}")
        raise ContentBlockedError(
            f"Contenido bloqueado por seguridad: {block_reason}", block_reason=block_reason
        )

    candidates = response.get("candidates") or []
    if not isinstance(candidates, list):
        raise _invalid_response("candidates no es una lista")
    if not candidates:
        logger.error("Upstream response has no candidates")
        raise ContentBlockedError("Respuesta inválida del modelo: sin candidatos")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise _invalid_response("el candidato no es un objeto")
    finish_reason = candidate.get("finishReason")
    if finish_reason in BLOCKING_FINISH_REASONS:
        logger.warning(f"Candidate filtered upstream: {finish_reason}")
        raise ContentBlockedError(
            f"Contenido filtrado por: {finish_reason}", block_reason=finish_reason
        )

    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise _invalid_response("content no es un objeto")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise _invalid_response("parts no es una lista")
    for part in parts:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            return part["text"]

    logger.error(f"Candidate has no text part (finishReason={finish_reason})")
    raise ContentBlockedError(
        "Respuesta inválida del modelo: sin texto generado", block_reason=finish_reason
    )


class ExtractionGateway:
    """
    Stateless image-to-records transform around the upstream vision model.

    One gateway is built per application with an explicit configuration and
    client; each call to ``extract`` is independent.
    """

    def __init__(self, config: GatewayConfig, client: Optional[GeminiClient] = None):
        self.config = config
        self.client = client or GeminiClient(config)
        # Fail at construction on an unknown template rather than per request
        self.prompt = build_extraction_prompt(config.prompt_template)

    async def close(self):
        await self.client.close()

    async def extract(self, submission: ImageSubmission) -> Any:
        """
        Extract attending patients from an agenda image.

        Args:
            submission: Uploaded image and MIME type

        Returns:
            List of patient record dicts, in the order the model emitted them

        Raises:
            ClientInputError: Missing or malformed image data
            ConfigurationError: No upstream credential configured
            UpstreamError: Upstream failure or timeout
            ContentBlockedError: Upstream withheld the output
            ResponseParseError: Model text is not valid JSON (or fails record_mode)
        """
        image = validate_image(submission.imageData, submission.mediaType)
        logger.info(
            f"Extraction requested: {image.size_bytes} bytes, media_type={image.media_type}"
        )

        if not self.config.has_api_key:
            logger.error("No API key found in configuration")
            raise ConfigurationError(
                "API key no está configurada. Verifica las variables de entorno."
            )
        logger.debug(f"API key starts with: {self.config.api_key_prefix()}")

        logger.info(
            f"Sending request to Gemini API (model={self.config.model}, "
            f"template={self.config.prompt_template})"
        )
        response = await self.client.generate_content(
            prompt=self.prompt,
            image_data=image.data,
            media_type=image.media_type,
        )

        raw_text = extract_generated_text(response)
        logger.debug(f"Raw output ({len(raw_text)} chars): {raw_text[:200]}...")

        parsed = parse_patient_records(raw_text)
        records = normalize_records(
            parsed, self.config.record_mode, raw_output=strip_code_fences(raw_text)
        )

        count = len(records) if isinstance(records, list) else 1
        logger.info(f"Successfully parsed {count} patients")
        return records

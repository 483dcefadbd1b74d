"""
Response parsing utilities.

Turns the model's generated text into patient records:
- strip_code_fences: Remove markdown fences the model sometimes adds
- parse_patient_records: Decode cleaned text as JSON
- normalize_records: Apply the configured record validation mode
"""

import json
import re
from typing import Any, Dict, List

from loguru import logger

from agenda_gateway.errors import ResponseParseError

RECORD_FIELDS = ("FECHA", "HORA", "NOMBRE", "IDENTIDAD", "EDAD")

PARSE_ERROR_MESSAGE = "Error al parsear respuesta del modelo"

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences (```json / ```) and surrounding whitespace.

    Idempotent: stripping an already stripped string returns it unchanged.

    Args:
        text: Raw generated text

    Returns:
        Cleaned text ready for JSON parsing

    Example:
        >>> strip_code_fences('```json\\n[{"NOMBRE": "ANA"}]\\n```')
        '[{"NOMBRE": "ANA"}]'
    """
    # Removing one fence can join stray backticks into a new one
    previous = None
    while previous != text:
        previous = text
        text = _FENCE_RE.sub("", text)
    return text.strip()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_patient_records(text: str) -> Any:
    """
    Parse generated text as JSON after fence cleanup.

    Args:
        text: Raw generated text from the model

    Returns:
        The decoded JSON value (normally a list of patient dicts)

    Raises:
        ResponseParseError: If the cleaned text is not strict JSON (NaN and
            Infinity are rejected). The error carries the cleaned text for
            diagnostics.
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned, parse_constant=_reject_constant)
    except ValueError as e:
        logger.warning(f"Could not parse model output as JSON: {e}")
        logger.debug(f"Unparseable model output: {cleaned[:500]}")
        raise ResponseParseError(PARSE_ERROR_MESSAGE, raw_output=cleaned) from e
    return parsed


def _coerce_record(record: Dict[str, Any]) -> Dict[str, Any]:
    missing = [field for field in RECORD_FIELDS if field not in record]
    if not missing:
        return record
    filled = dict(record)
    for field in missing:
        filled[field] = ""
    return filled


def _is_strict_record(record: Any) -> bool:
    return isinstance(record, dict) and all(
        isinstance(record.get(field), str) for field in RECORD_FIELDS
    )


def normalize_records(parsed: Any, mode: str, raw_output: str) -> Any:
    """
    Validate parsed model output according to the record mode.

    Modes:
    - passthrough: return the parsed value verbatim
    - coerce: require an array of objects; missing fields become ""
    - strict: require every item to hold all fields as strings

    Args:
        parsed: Value returned by parse_patient_records
        mode: One of "passthrough", "coerce", "strict"
        raw_output: Cleaned model text, attached to any error raised

    Returns:
        Records to send back to the client

    Raises:
        ResponseParseError: If the value does not satisfy the mode
    """
    if mode == "passthrough":
        return parsed

    if not isinstance(parsed, list):
        raise ResponseParseError(
            f"{PARSE_ERROR_MESSAGE}: se esperaba un array JSON", raw_output=raw_output
        )

    if mode == "strict":
        bad = [i for i, record in enumerate(parsed) if not _is_strict_record(record)]
        if bad:
            logger.warning(f"Strict mode rejected records at positions {bad}")
            raise ResponseParseError(
                f"{PARSE_ERROR_MESSAGE}: registros inválidos en posiciones {bad}",
                raw_output=raw_output,
            )
        return parsed

    records: List[Dict[str, Any]] = []
    for i, record in enumerate(parsed):
        if not isinstance(record, dict):
            raise ResponseParseError(
                f"{PARSE_ERROR_MESSAGE}: el elemento {i} no es un objeto",
                raw_output=raw_output,
            )
        records.append(_coerce_record(record))
    return records

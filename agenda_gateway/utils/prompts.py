"""
Prompt templates for patient attendance extraction.

Each template instructs the vision model to read a medical agenda image and
return the patients marked as arrived ("LLEGO" column) as a bare JSON array.
Templates are selected by name through configuration.
"""

from agenda_gateway.errors import ConfigurationError

RECORD_FIELDS_BLOCK = """Para cada paciente identificado, extrae:
- FECHA (formato: YYYY/MM/DD)
- HORA (HH:MM)
- NOMBRE (mayúsculas)
- IDENTIDAD (solo números)
- EDAD (solo el número)
Si un dato no es legible, usa una cadena vacía ("")."""

RESPONSE_FORMAT_BLOCK = """FORMATO DE RESPUESTA:
Responde ÚNICAMENTE con un array JSON puro.
Ejemplo:
[
  { "FECHA": "2025/12/02", "HORA": "13:40", "NOMBRE": "JUAN PEREZ", "IDENTIDAD": "123456", "EDAD": "30" }
]

No incluyas texto antes ni después del JSON. No uses bloques de código markdown."""

REASONING_PROMPT = f"""Analiza esta imagen de una agenda médica. Tu tarea es extraer los datos de los pacientes que ASISTIERON.

CRITERIO CRÍTICO:
Debes extraer CADA paciente que tenga una marca de verificación (✓), un "check", o una casilla marcada en la columna "LLEGO".
La precisión es más importante que la velocidad. NO debes omitir ningún paciente marcado.

PASOS DE RAZONAMIENTO:
1. Primero, recorre visualmente la columna "LLEGO" de arriba a abajo, fila por fila.
2. Cuenta cuántas casillas tienen marca de verificación.
3. Luego, extrae los datos de esas filas específicas, en el mismo orden.
4. Antes de responder, verifica que el número de pacientes extraídos coincide con el número de marcas contadas.

{RECORD_FIELDS_BLOCK}

{RESPONSE_FORMAT_BLOCK}
"""

CONCISE_PROMPT = f"""Extrae de esta agenda médica los pacientes con la casilla "LLEGO" marcada.

{RECORD_FIELDS_BLOCK}

{RESPONSE_FORMAT_BLOCK}
"""

STRICT_PROMPT = f"""{REASONING_PROMPT}
REGLAS ADICIONALES:
- Nunca inventes filas: incluye solo filas cuya casilla "LLEGO" esté claramente marcada.
- Si ninguna fila está marcada, responde exactamente con [].
"""

# Named templates selectable through PROMPT_TEMPLATE
PROMPT_TEMPLATES = {
    "razonamiento": REASONING_PROMPT,
    "conciso": CONCISE_PROMPT,
    "estricto": STRICT_PROMPT,
}

DEFAULT_TEMPLATE = "razonamiento"


def build_extraction_prompt(template_name: str = DEFAULT_TEMPLATE) -> str:
    """
    Return the instruction text for the given template name.

    Args:
        template_name: Key in PROMPT_TEMPLATES

    Returns:
        Prompt string sent alongside the image

    Raises:
        ConfigurationError: If the template name is not registered

    Example:
        >>> prompt = build_extraction_prompt("razonamiento")
        >>> "LLEGO" in prompt
        True
    """
    try:
        return PROMPT_TEMPLATES[template_name].strip()
    except KeyError:
        raise ConfigurationError(f"Plantilla de prompt desconocida: {template_name}") from None

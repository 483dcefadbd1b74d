"""
Pydantic models for request/response validation.

Defines schemas for:
- ImageSubmission: Uploaded agenda image (base64) and its MIME type
- PatientRecord: One attending patient as returned to the client
- HealthCheckResponse: Gateway status
- ErrorResponse / ParseErrorResponse: Error bodies
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageSubmission(BaseModel):
    """
    Request schema for image processing.

    Both fields are optional at the schema level; the extraction gateway
    validates them so a missing image is reported as a 400.

    Attributes:
        imageData: Base64-encoded image bytes (a data URL prefix is accepted)
        mediaType: Image MIME type, e.g. image/png
    """

    imageData: Optional[str] = Field(
        default=None, description="Base64-encoded image of the agenda sheet"
    )
    mediaType: Optional[str] = Field(default=None, description="Image MIME type")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"imageData": "iVBORw0KGgoAAAANSUhEUgAA...", "mediaType": "image/png"}
        }
    )


class PatientRecord(BaseModel):
    """
    One patient marked as arrived on the agenda.

    Values are free-form strings produced by the model; missing fields are
    empty strings.
    """

    FECHA: str = Field(default="", description="Appointment date, YYYY/MM/DD")
    HORA: str = Field(default="", description="Appointment time, HH:MM")
    NOMBRE: str = Field(default="", description="Patient name in uppercase")
    IDENTIDAD: str = Field(default="", description="Identity document, digits only")
    EDAD: str = Field(default="", description="Age, digits only")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "FECHA": "2025/01/01",
                "HORA": "09:00",
                "NOMBRE": "ANA LOPEZ",
                "IDENTIDAD": "12345",
                "EDAD": "40",
            }
        },
    )


class HealthCheckResponse(BaseModel):
    """
    Health check response schema.

    Attributes:
        status: Always "ok" when the gateway answers
        timestamp: ISO-8601 UTC time of the check
        hasApiKey: Whether an upstream credential is configured
        environment: Deployment mode flag
        port: Configured listening port
        model: Upstream model identifier
        promptTemplate: Active prompt template name
        version: Gateway version
    """

    status: str = Field(..., description="Overall health status")
    timestamp: str = Field(..., description="Time of the check (UTC, ISO-8601)")
    hasApiKey: bool = Field(..., description="Upstream credential configured")
    environment: str
    port: int
    model: str
    promptTemplate: str
    version: str


class ErrorResponse(BaseModel):
    error: str
    note: Optional[str] = None


class ParseErrorResponse(BaseModel):
    error: str
    raw: str

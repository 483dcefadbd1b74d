"""
FastAPI Gateway for extracting patient attendance from medical agenda images.

This gateway provides:
- Request validation for uploaded schedule images
- Prompt construction for a vision-language model (Gemini generateContent)
- Cleanup and validation of the model's JSON reply
- Health checks
"""

__version__ = "0.1.0"

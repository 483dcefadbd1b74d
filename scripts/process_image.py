#!/usr/bin/env python3
"""
Send a local agenda image to a running gateway and save the attending patients.

Steps:
1. Read and base64-encode the image (MIME type from the file extension)
2. POST it to /api/process-image
3. Print the patient list, or write it as JSON / CSV

Prerequisites:
- Gateway running (python -m agenda_gateway) with GEMINI_API_KEY configured
"""

import argparse
import base64
import csv
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, List

import httpx
from loguru import logger

from agenda_gateway.utils.parsers import RECORD_FIELDS

# Configure loguru
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
    level="INFO",
    colorize=True
)


def encode_image(image_path: Path) -> dict:
    """Build the request body for an image file."""
    media_type, _ = mimetypes.guess_type(image_path.name)
    data = base64.b64encode(image_path.read_bytes()).decode("ascii")
    logger.info(f"Encoded {image_path.name} ({media_type}, {len(data)} base64 chars)")
    return {"imageData": data, "mediaType": media_type or "image/jpeg"}


def write_csv(records: List[dict], output: Path) -> None:
    with open(output, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(RECORD_FIELDS), extrasaction="ignore")
        writer.writeheader()
        for record in records:
            writer.writerow({field: record.get(field, "") for field in RECORD_FIELDS})


def process_image(url: str, image_path: Path, timeout: float) -> Any:
    """
    Post an image to the gateway.

    Returns:
        Decoded patient list

    Raises:
        httpx.HTTPStatusError: If the gateway answered with an error status
    """
    body = encode_image(image_path)
    response = httpx.post(f"{url.rstrip('/')}/api/process-image", json=body, timeout=timeout)
    if response.status_code != 200:
        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text}
        logger.error(f"Gateway returned {response.status_code}: {payload.get('error')}")
        if "raw" in payload:
            logger.error(f"Raw model output:\n{payload['raw']}")
    response.raise_for_status()
    return response.json()


def main():
    """Process one agenda image through the gateway."""
    parser = argparse.ArgumentParser(
        description='Extract attending patients from an agenda image'
    )
    parser.add_argument('image', type=Path, help='Path to the agenda image')
    parser.add_argument(
        '--url',
        default='http://localhost:3001',
        help='Gateway base URL (default: http://localhost:3001)'
    )
    parser.add_argument(
        '--output',
        type=Path,
        help='Write results to this file (.csv or .json); prints to stdout otherwise'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=120.0,
        help='Request timeout in seconds (default: 120)'
    )

    args = parser.parse_args()

    if not args.image.is_file():
        logger.error(f"Image not found: {args.image}")
        sys.exit(1)

    try:
        records = process_image(args.url, args.image, args.timeout)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except httpx.HTTPError as e:
        logger.error(f"Request failed: {e}")
        sys.exit(1)

    logger.success(f"Extracted {len(records)} patients")

    if args.output is None:
        print(json.dumps(records, ensure_ascii=False, indent=2))
    elif args.output.suffix.lower() == ".csv":
        write_csv(records, args.output)
        logger.info(f"Saved CSV to {args.output}")
    else:
        args.output.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Saved JSON to {args.output}")


if __name__ == "__main__":
    main()

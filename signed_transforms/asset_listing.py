"""
Asset Listing Module

Handles reading asset lists from CSV and writing signed URL CSVs.
"""

import csv
import os
import mimetypes
from typing import List, Dict, Optional
import logging

from .models import AssetRef, FocalPoint

logger = logging.getLogger(__name__)

URL_COLUMNS = [
    'url', 'URL', 'public_url', 'Public URL', 'image_url', 'Image URL',
    'Image Link', 'image_link', 'image', 'Image'
]
MIME_COLUMNS = ['mime_type', 'Mime Type', 'mimetype', 'content_type', 'Content Type']

OUTPUT_FIELDS = ['source_url', 'signed_url', 'status', 'error']


def get_column(row: Dict[str, str], names: List[str]) -> Optional[str]:
    """
    Get the first non-empty value among several possible column names.

    Args:
        row: Dictionary containing CSV row data
        names: Candidate column names in order of preference

    Returns:
        The value or None if no column matched
    """
    for name in names:
        if name in row and row[name]:
            return row[name]

    return None


def row_to_asset(row: Dict[str, str]) -> AssetRef:
    """
    Build an AssetRef from a CSV row.

    The mime type is guessed from the URL when no column provides it.
    Focal points are read from 'focal_x'/'focal_y' when both are present.
    """
    url = get_column(row, URL_COLUMNS)

    mime_type = get_column(row, MIME_COLUMNS)
    if not mime_type and url:
        mime_type = mimetypes.guess_type(url.split('?')[0])[0]

    focal_point = None
    if row.get('focal_x') and row.get('focal_y'):
        focal_point = FocalPoint(float(row['focal_x']), float(row['focal_y']))

    return AssetRef(
        mime_type=mime_type or 'application/octet-stream',
        public_url=url,
        focal_point=focal_point,
    )


def read_asset_csv(filepath: str) -> List[AssetRef]:
    """
    Read a CSV file listing assets.

    Args:
        filepath: Path to the input CSV file

    Returns:
        One AssetRef per row
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Asset CSV file not found: {filepath}")

    # Try different encodings to handle various CSV formats
    encodings = ['utf-8-sig', 'utf-8', 'latin-1', 'cp1252']

    for encoding in encodings:
        try:
            with open(filepath, 'r', encoding=encoding, newline='') as f:
                reader = csv.DictReader(f)
                assets = []
                for row in reader:
                    # Clean up column names (remove BOM, whitespace)
                    cleaned_row = {k.strip(): v.strip() if v else '' for k, v in row.items() if k}
                    assets.append(row_to_asset(cleaned_row))

            logger.info(f"Successfully read {len(assets)} assets from {filepath} using {encoding}")
            return assets

        except UnicodeDecodeError:
            continue

    raise ValueError(f"Could not read CSV file with any supported encoding: {filepath}")


def write_signed_urls_csv(rows: List[Dict[str, str]], output_path: str) -> str:
    """
    Write signed URLs to CSV.

    Args:
        rows: Dictionaries with source_url, signed_url, status and error
        output_path: Path to write the output CSV

    Returns:
        Path to the written file
    """
    # Ensure output directory exists
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    if not rows:
        logger.warning("No signed URLs to write")
        return output_path

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=OUTPUT_FIELDS, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(rows)

    logger.info(f"Wrote {len(rows)} signed URLs to {output_path}")
    return output_path

"""Loading and saving template workbooks."""

from __future__ import annotations

import base64
import binascii
import re
import zipfile
from io import BytesIO
from pathlib import Path

import structlog
from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from smart_invoice.errors import MissingTemplate

logger = structlog.get_logger(__name__)

BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def decode_base64_template(data: str) -> bytes:
    """Decode base64 template text, tolerating a data-URL prefix and whitespace."""
    if "," in data:
        data = data.split(",", 1)[1]
    data = re.sub(r"\s", "", data)
    if not data or not BASE64_RE.match(data):
        raise MissingTemplate("Invalid template data format")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MissingTemplate("Invalid template data format", details=str(e)) from e


def load_template(source: bytes | str | Path | None) -> Workbook:
    """Open a template from raw bytes, base64 text or a file path.

    Raises:
        MissingTemplate: Nothing supplied, or the data is not a readable workbook.
    """
    if source is None or (isinstance(source, (bytes, str)) and not source):
        raise MissingTemplate("No template supplied")

    if isinstance(source, Path):
        if not source.exists():
            raise MissingTemplate(f"Template not found: {source}")
        data = source.read_bytes()
    elif isinstance(source, str):
        data = decode_base64_template(source)
    else:
        data = bytes(source)

    try:
        workbook = load_workbook(BytesIO(data))
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        logger.warning("template_load_failed", error=str(e))
        raise MissingTemplate("Template is not a readable .xlsx workbook", details=str(e)) from e

    force_recalculation(workbook)
    return workbook


def force_recalculation(workbook: Workbook) -> None:
    """Ask Excel to recompute every formula when the file is opened."""
    workbook.calculation.fullCalcOnLoad = True


def first_worksheet(workbook: Workbook) -> Worksheet:
    if not workbook.worksheets:
        raise MissingTemplate("Template has no worksheets")
    return workbook.worksheets[0]


def workbook_to_bytes(workbook: Workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()

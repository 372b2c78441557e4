"""Receipt OCR: Tesseract text extraction plus field hints.

The hints are suggestions for pre-filling an expense form; the user accepts
or overrides them before the expense is created.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import IO, Any, Dict, Iterable, List

import pytesseract
from PIL import Image, UnidentifiedImageError

from expenseflow.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = "$€£¥₹₽₩₦₨₪₫₡₵₺₴₸₼₲₱₭₯₰₳₶₷₻₾₿"
AMOUNT_PATTERN = re.compile(rf"[{re.escape(CURRENCY_SYMBOLS)}][\d,]+\.?\d{{0,2}}|\d+\.\d{{2}}")
DATE_PATTERN = re.compile(
    r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"
    r"|\b\d{2,4}[/-]\d{1,2}[/-]\d{1,2}\b"
    r"|\b\w+ \d{1,2},? \d{2,4}\b"
)
MAX_VENDORS = 5


@dataclass
class ReceiptScan:
    raw_text: str
    potential_amounts: List[str] = field(default_factory=list)
    potential_dates: List[str] = field(default_factory=list)
    potential_vendors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawText": self.raw_text,
            "potentialAmounts": self.potential_amounts,
            "potentialDates": self.potential_dates,
            "potentialVendors": self.potential_vendors,
        }


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def extract_amounts(text: str) -> List[str]:
    """Currency-looking tokens such as ``$12.50`` or ``45.00``."""
    return _unique(match.group(0) for match in AMOUNT_PATTERN.finditer(text))


def extract_dates(text: str) -> List[str]:
    return _unique(match.group(0) for match in DATE_PATTERN.finditer(text))


def extract_vendors(text: str) -> List[str]:
    """Short lines made of capitalised words, which tend to be business names."""
    vendors: List[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if not 3 < len(trimmed) < 50:
            continue
        words = trimmed.split(" ")
        capitalized = [word for word in words if len(word) > 1 and word[0] == word[0].upper()]
        if len(capitalized) >= 2 or (len(capitalized) == 1 and len(words) == 1):
            vendors.append(trimmed)
    return vendors[:MAX_VENDORS]


def parse_receipt_text(text: str) -> ReceiptScan:
    return ReceiptScan(
        raw_text=text,
        potential_amounts=extract_amounts(text),
        potential_dates=extract_dates(text),
        potential_vendors=extract_vendors(text),
    )


def scan_receipt(stream: IO[bytes], mimetype: str = "", language: str = "eng") -> ReceiptScan:
    """Run Tesseract over an uploaded receipt image and parse the result."""
    if not (mimetype or "").startswith("image/"):
        raise ValidationError("Only image files are allowed")

    try:
        with Image.open(stream) as image:
            text = pytesseract.image_to_string(image, lang=language)
    except UnidentifiedImageError:
        raise ValidationError("Uploaded file is not a readable image") from None
    except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as exc:
        logger.error("Tesseract failed: %s", exc)
        raise ExternalServiceError("Failed to extract text from image") from exc

    logger.debug("OCR extracted %d characters", len(text))
    return parse_receipt_text(text)

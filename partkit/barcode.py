"""
Barcode text normalization applied to scanner input before part lookup.

Scanners often wrap the payload in a fixed prefix/suffix or send UPC-E codes
that the BOM lists in UPC-A form. process_barcode() undoes that according to
BarcodeSettings. Checksum failures are only logged.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class BarcodeSettings:
    strip_prefix: str = ""
    strip_suffix: str = ""
    uppercase: bool = False
    trim_to_last_n: int = 0
    upc_ean_validation: bool = False
    expand_upce: bool = False
    ignore_non_digit: bool = False


def expand_upce(upce: str) -> str:
    """Expand an 8-digit UPC-E code to its 12-digit UPC-A form.

    Codes that are not 8 digits are returned unchanged.
    """
    if len(upce) != 8 or not upce.isdigit():
        return upce

    manufacturer = upce[1:4]
    product = upce[4:6]
    last = upce[6]

    if last in "012":
        expanded = f"0{manufacturer}{last}0000{product}"
    elif last == "3":
        expanded = f"0{manufacturer}00000{product}"
    elif last == "4":
        expanded = f"0{manufacturer}0000{product}0"
    else:
        expanded = f"0{manufacturer[:2]}{last}0000{manufacturer[2]}{product}"

    return expanded + upce[7]


def is_valid_upc_ean(code: str) -> bool:
    """Check the trailing check digit of an EAN-8, UPC-A or EAN-13 code."""
    if not code.isdigit() or len(code) < 2:
        return False

    digits = [int(c) for c in code]
    check = digits.pop()
    # Weight 3 on the digit next to the check digit, alternating leftwards
    total = sum(
        d * (3 if i % 2 == 0 else 1)
        for i, d in enumerate(reversed(digits))
    )
    return (10 - total % 10) % 10 == check


def _process_upc_ean(code: str, settings: BarcodeSettings) -> str:
    if settings.ignore_non_digit:
        code = re.sub(r'\D', '', code)

    if settings.expand_upce and len(code) == 8:
        code = expand_upce(code)

    if len(code) in (8, 12, 13) and code.isdigit() and not is_valid_upc_ean(code):
        logger.warning(f"Invalid UPC/EAN checksum: {code}")

    return code


def process_barcode(code: str, settings: BarcodeSettings = None) -> str:
    """
    Normalize raw scanner text.

    Steps, in order: strip prefix, strip suffix, keep the last N characters,
    UPC/EAN handling (non-digit removal, UPC-E expansion, advisory checksum
    check), uppercase.

    Args:
        code: Decoded barcode text
        settings: Processing options (defaults leave the code unchanged)

    Returns:
        The processed code ("" for empty input)
    """
    if not code:
        return ""
    settings = settings or BarcodeSettings()
    processed = str(code)

    if settings.strip_prefix and processed.startswith(settings.strip_prefix):
        processed = processed[len(settings.strip_prefix):]
    if settings.strip_suffix and processed.endswith(settings.strip_suffix):
        processed = processed[:-len(settings.strip_suffix)]

    if settings.trim_to_last_n > 0:
        processed = processed[-settings.trim_to_last_n:]

    if settings.upc_ean_validation:
        processed = _process_upc_ean(processed, settings)

    if settings.uppercase:
        processed = processed.upper()

    return processed

"""
Reference Extractor - Canonical transaction reference from narration text.

Two channel formats share the same free-text field with no type tag:
- Point-of-sale:    "POSAG033732~524417002625 NAIROBI"  -> "524417002625"
- Mobile transfer:  "TI28ZF3AQY~631412"                 -> "TI28ZF3AQY"

Pure pattern matching. Nothing here raises; unusable input yields None.
"""
import re
from enum import Enum
from typing import List, Optional, Tuple


DELIMITER = "~"
POS_PREFIX = "POS"

# 12 digits starting with the Kenyan country code, not part of a longer run
PHONE_PATTERN = re.compile(r'(?<!\d)254(\d{9})(?!\d)')


class NarrationFormat(Enum):
    POINT_OF_SALE = "point_of_sale"
    MOBILE_TRANSFER = "mobile_transfer"
    UNKNOWN = "unknown"


def _segments(text: Optional[str]) -> List[str]:
    if not isinstance(text, str):
        return []
    return [seg.strip() for seg in text.split(DELIMITER)]


def classify(text: Optional[str]) -> NarrationFormat:
    segments = _segments(text)
    if not segments or not segments[0]:
        return NarrationFormat.UNKNOWN
    if segments[0].upper().startswith(POS_PREFIX):
        return NarrationFormat.POINT_OF_SALE
    return NarrationFormat.MOBILE_TRANSFER


def _point_of_sale_reference(segments: List[str]) -> Optional[str]:
    # Terminal id comes first, the card reference second, then free text
    if len(segments) > 1 and segments[1]:
        return segments[1].split()[0]
    return segments[0]


def _mobile_transfer_reference(segments: List[str]) -> Optional[str]:
    return segments[0] or None


_EXTRACTORS = {
    NarrationFormat.POINT_OF_SALE: _point_of_sale_reference,
    NarrationFormat.MOBILE_TRANSFER: _mobile_transfer_reference,
}


def extract_reference(text: Optional[str]) -> Optional[str]:
    """
    Extract the canonical reference from a single narration or memo line.

    Args:
        text: Raw narration text, may be None

    Returns:
        Reference string, or None when no text is available
    """
    extractor = _EXTRACTORS.get(classify(text))
    if extractor is None:
        return None
    return extractor(_segments(text))


def extract_phone(*texts: Optional[str]) -> Optional[str]:
    """First 254XXXXXXXXX number in the given texts, rewritten as 0XXXXXXXXX."""
    for text in texts:
        if not isinstance(text, str):
            continue
        match = PHONE_PATTERN.search(text)
        if match:
            return "0" + match.group(1)
    return None


class ReferenceExtractor:
    """
    Picks the preferred source field and runs the format-specific extraction.

    The structured memo line wins over the raw narration when both exist.

    Usage:
        extractor = ReferenceExtractor()
        reference, phone = extractor.extract(narration="TI28ZF3AQY~631412")
    """

    def extract(self, narration: Optional[str] = None, memo_line: Optional[str] = None,
                extra_lines: Tuple[Optional[str], ...] = ()) -> Tuple[Optional[str], Optional[str]]:
        source = memo_line if isinstance(memo_line, str) and memo_line.strip() else narration
        reference = extract_reference(source)
        phone = extract_phone(narration, memo_line, *extra_lines)
        return reference, phone

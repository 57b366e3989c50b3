"""
Asset Registry - Record Codec

Converts Asset records to their canonical text encoding and back.

The encoding is a flat object of five named fields::

    {"assetId":"A1","owner":"alice","assetType":"gold","description":"bar","value":10.50}

String fields are sanitized before they are written: line breaks are dropped,
surrounding whitespace is trimmed and backslashes and double quotes are
escaped so that stored data can never be confused with the delimiters. The
value is always written with exactly two fractional digits.

Decoding does not rely on field order or spacing. It scans ``"name": value``
pairs from left to right, accepting either a quoted string or a bare token
for each value, so text embedded inside a quoted field is never mistaken for
a field of its own.
"""

import logging
import math
import re
from typing import Dict

from pydantic import ValidationError

from .exceptions import InvalidEncodingError
from .schema import Asset, normalize_text


logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("assetId", "owner", "assetType", "value")

_FIELD_PATTERN = re.compile(
    r'"(?P<name>[A-Za-z_][A-Za-z0-9_]*)"\s*:\s*'
    r'(?:"(?P<quoted>(?:[^"\\]|\\.)*)"|(?P<bare>[^,}\s]+))',
    re.DOTALL,
)
_ESCAPE_PATTERN = re.compile(r'\\(.)', re.DOTALL)


def sanitize_field(value: str) -> str:
    """Normalize a text field and escape it for embedding in quotes."""
    text = normalize_text(value)
    return text.replace('\\', '\\\\').replace('"', '\\"')


def _unescape(text: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda m: m.group(1), text)


def encode_asset(asset: Asset) -> str:
    """Encode an asset to its canonical text form."""
    return (
        '{"assetId":"%s","owner":"%s","assetType":"%s","description":"%s","value":%.2f}'
        % (
            sanitize_field(asset.asset_id),
            sanitize_field(asset.owner),
            sanitize_field(asset.asset_type),
            sanitize_field(asset.description),
            asset.value,
        )
    )


def extract_fields(text: str) -> Dict[str, str]:
    """
    Extract named fields from encoded text.

    The first occurrence of a name wins. Quoted values are unescaped; bare
    values are returned as written.
    """
    fields: Dict[str, str] = {}
    for match in _FIELD_PATTERN.finditer(text):
        name = match.group('name')
        if name in fields:
            continue
        quoted = match.group('quoted')
        fields[name] = _unescape(quoted) if quoted is not None else match.group('bare')
    return fields


def decode_asset(text: str) -> Asset:
    """
    Decode canonical text into an Asset.

    Raises:
        InvalidEncodingError: if the text is blank, a required field is
            missing or empty, or the value is not a finite number.
    """
    if text is None or not text.strip():
        raise InvalidEncodingError("Encoded asset is empty")

    fields = extract_fields(text)

    missing = [name for name in REQUIRED_FIELDS if name not in fields]
    if missing:
        raise InvalidEncodingError(f"Encoded asset is missing fields: {', '.join(missing)}")

    try:
        value = float(fields['value'])
    except ValueError as e:
        raise InvalidEncodingError(f"Invalid asset value {fields['value']!r}", e) from e
    if not math.isfinite(value):
        raise InvalidEncodingError(f"Asset value must be finite, got {fields['value']!r}")

    try:
        return Asset(
            asset_id=fields['assetId'],
            owner=fields['owner'],
            asset_type=fields['assetType'],
            description=fields.get('description', ''),
            value=value,
        )
    except ValidationError as e:
        logger.debug(f"Rejected decoded asset fields: {e}")
        raise InvalidEncodingError("Encoded asset has invalid fields", e) from e

"""Parsing of structured brand-extraction replies."""

import re
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from .exceptions import ResponseParseError
from .models import BrandAnalysis, BrandExtraction

FENCED_JSON_PATTERN = re.compile(r"```json[ \t]*\r?\n(.*?)```", re.DOTALL | re.IGNORECASE)

_brand_list = TypeAdapter(list[BrandAnalysis])


def extract_fenced_json(text: Optional[str]) -> str:
    """Return the body of the first ```json fenced block in `text`.

    Commentary before or after the block is ignored.

    Raises:
        ResponseParseError: If no such block exists
    """
    match = FENCED_JSON_PATTERN.search(text or "")
    if not match:
        raise ResponseParseError("Brand analysis reply did not contain a ```json code block")
    return match.group(1).strip()


def parse_brand_object(raw: Optional[str]) -> list[BrandAnalysis]:
    """Parse a {"brands": [...]} JSON document."""
    if not raw or not raw.strip():
        raise ResponseParseError("Brand analysis reply was empty")
    try:
        return BrandExtraction.model_validate_json(raw).brands
    except ValidationError as e:
        raise ResponseParseError(f"Invalid brand analysis JSON: {_summarize(e)}") from e


def parse_brand_array(raw: Optional[str]) -> list[BrandAnalysis]:
    """Parse a bare JSON array of brand analyses."""
    if not raw or not raw.strip():
        raise ResponseParseError("Brand analysis reply was empty")
    try:
        return _brand_list.validate_json(raw)
    except ValidationError as e:
        raise ResponseParseError(f"Invalid brand analysis JSON: {_summarize(e)}") from e


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "document"
    return f"{location}: {first.get('msg', 'invalid value')}"

"""Response Parser Module

This module handles:
- Extracting the outermost JSON object from free-form model output
- Parsing comparison responses with a raw-text fallback
"""

import json
import re
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()

# Greedy: first '{' to last '}' so nested objects stay intact
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the outermost JSON object embedded in ``text``, or None.

    Handles code fences and prose around the object since the regex only
    looks at the braces.
    """
    if not text:
        return None
    match = JSON_OBJECT_PATTERN.search(text)
    if match is None:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.debug("json_object_parse_failed", error=str(e))
        return None
    if not isinstance(data, dict):
        return None
    return data


class ResponseParser:
    """Parses comparison responses into dictionaries."""

    def parse_comparison(self, text: str) -> Dict[str, Any]:
        """Parse a comparison response.

        Args:
            text: Raw model output

        Returns:
            The parsed JSON object, or ``{"raw_comparison": text}`` when the
            text holds no parseable object
        """
        data = extract_json_object(text)
        if data is None:
            logger.warning("comparison_unparseable", length=len(text or ""))
            return {"raw_comparison": text}
        return data

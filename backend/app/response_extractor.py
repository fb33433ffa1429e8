"""Pull a JSON array of test specs out of free-form AI output."""

import json
import logging
from typing import Any, List

from models import TestSpec

logger = logging.getLogger(__name__)


class ExtractionFailed(Exception):
    """AI output did not contain a parseable array of test specs"""


def find_json_array(raw_text: str) -> str:
    """Substring from the first '[' to the last ']' (prose and code fences dropped)"""
    text = raw_text or ""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        raise ExtractionFailed("No JSON array found in AI response")
    return text[start:end + 1]


def _to_spec(index: int, item: dict) -> TestSpec:
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        name = f"Generated Test {index}"

    description = item.get("description")
    steps = item.get("steps")
    variables = item.get("variables")

    return TestSpec(
        name=name.strip(),
        description=description if isinstance(description, str) else None,
        variables={str(k): str(v) for k, v in variables.items()} if isinstance(variables, dict) else {},
        steps=steps if isinstance(steps, list) else [],
    )


def extract(raw_text: str) -> List[TestSpec]:
    """Parse the test specs embedded in an AI response

    Only the outer shape is checked: the array must parse and its object
    elements become specs. Individual steps are left raw; the renderer drops
    the ones it does not understand.
    """
    candidate = find_json_array(raw_text)

    try:
        data: Any = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionFailed(f"AI response is not valid JSON: {str(e)[:80]}") from e

    if not isinstance(data, list):
        raise ExtractionFailed("AI response JSON is not an array")

    specs = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            logger.debug(f"[EXTRACT] Skipping non-object element #{index}")
            continue
        specs.append(_to_spec(index, item))

    logger.info(f"[EXTRACT] Parsed {len(specs)} test spec(s) from AI response")
    return specs

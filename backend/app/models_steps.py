"""
Step Vocabulary for rendered test definitions
The closed set of step kinds the intellitester runner understands
"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 2000


def _css_selector(value: Any) -> Any:
    # Rendered files use {"css": "..."}; AI output usually sends the bare selector
    if isinstance(value, dict) and "css" in value:
        return value["css"]
    return value


CssSelector = Annotated[str, BeforeValidator(_css_selector)]


class NavigateStep(BaseModel):
    """Open a path relative to the configured baseUrl"""
    type: Literal["navigate"] = "navigate"
    value: str


class WaitStep(BaseModel):
    """Pause for a fixed number of milliseconds"""
    type: Literal["wait"] = "wait"
    timeout: int = Field(
        default=DEFAULT_WAIT_MS,
        ge=0,
        validation_alias=AliasChoices("timeout", "timeoutMs"),
    )


class InputStep(BaseModel):
    """Type a value into the element matched by a CSS selector"""
    type: Literal["input"] = "input"
    target: CssSelector = Field(min_length=1, validation_alias=AliasChoices("target", "targetSelector", "selector"))
    value: str
    optional: bool = False


class TapStep(BaseModel):
    """Click the element matched by a CSS selector"""
    type: Literal["tap"] = "tap"
    target: CssSelector = Field(min_length=1, validation_alias=AliasChoices("target", "targetSelector", "selector"))
    optional: bool = False


class ScreenshotStep(BaseModel):
    """Capture the page into a named image file"""
    type: Literal["screenshot"] = "screenshot"
    name: str = Field(min_length=1)


class AssertStep(BaseModel):
    """Fail unless the element matched by a CSS selector is present"""
    type: Literal["assert"] = "assert"
    target: CssSelector = Field(min_length=1, validation_alias=AliasChoices("target", "targetSelector", "selector"))


TestStep = Annotated[
    Union[NavigateStep, WaitStep, InputStep, TapStep, ScreenshotStep, AssertStep],
    Field(discriminator="type"),
]

STEP_MODELS = (NavigateStep, WaitStep, InputStep, TapStep, ScreenshotStep, AssertStep)

# kind -> (required fields, optional fields), as exposed to the AI prompt
STEP_FIELDS: Dict[str, Tuple[List[str], List[str]]] = {
    "navigate": (["value"], []),
    "wait": ([], ["timeout"]),
    "input": (["target", "value"], ["optional"]),
    "tap": (["target"], ["optional"]),
    "screenshot": (["name"], []),
    "assert": (["target"], []),
}

STEP_TYPES = list(STEP_FIELDS)

_step_adapter = TypeAdapter(TestStep)


def parse_step(data: Any) -> Optional[Union[NavigateStep, WaitStep, InputStep, TapStep, ScreenshotStep, AssertStep]]:
    """Validate a raw step mapping; unknown or malformed steps give None"""
    if not isinstance(data, dict) or not isinstance(data.get("type"), str) or data["type"] not in STEP_FIELDS:
        logger.debug(f"[STEPS] Dropping unrecognized step: {data!r}")
        return None
    try:
        return _step_adapter.validate_python(data)
    except ValidationError as e:
        logger.debug(f"[STEPS] Dropping malformed {data.get('type')} step: {e.error_count()} error(s)")
        return None


def coerce_step(item: Any):
    """Return a step model for either a model instance or a raw mapping"""
    if isinstance(item, STEP_MODELS):
        return item
    return parse_step(item)


def describe_vocabulary() -> str:
    """Human-readable list of the step kinds and their fields"""
    lines = []
    for kind, (required, optional) in STEP_FIELDS.items():
        fields = [f'"{name}"' for name in required] + [f'"{name}" (optional)' for name in optional]
        lines.append(f'- "{kind}": ' + (", ".join(fields) if fields else "no fields"))
    return "\n".join(lines)

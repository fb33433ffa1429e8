"""
Template Renderer - turns a TestSpec into an intellitester YAML test definition

The layout mirrors the hand-written scenario files: header, config block,
optional variables, then one block per step separated by blank lines.
"""

import json
import re
from typing import List

from models import TestSpec
from models_steps import (
    AssertStep, InputStep, NavigateStep, ScreenshotStep, TapStep, WaitStep, coerce_step
)

# Plain scalars that YAML would read back as something other than the same string
_RESERVED_SCALAR = re.compile(
    r"^(~|null|true|false|yes|no|on|off|=|<<"
    r"|[-+]?(\.?\d[\d_.eE+-]*|\.inf|\.nan)"
    r"|[-+]?0x[0-9a-f_]+|[-+]?0b[01_]+"
    r"|[-+]?\d[\d_]*(:[0-5]?\d)+(\.[\d_]*)?"
    r"|\d{4}-\d\d?-\d\d?([t ]|\s+)\d.*)$",
    re.IGNORECASE,
)
_INDICATORS = set("-?:,[]{}#&*!|>'\"%@`")


def quoted(value) -> str:
    """Double-quoted YAML scalar with backslashes, quotes and non-printables escaped"""
    text = json.dumps(str(value), ensure_ascii=False)
    return "".join(ch if ch.isprintable() else _escape_char(ch) for ch in text)


def _escape_char(ch: str) -> str:
    code = ord(ch)
    return "\\u%04x" % code if code <= 0xFFFF else "\\U%08x" % code


def scalar(value) -> str:
    """Plain scalar when YAML reads it back unchanged, quoted otherwise"""
    text = str(value)
    if (
        not text
        or text != text.strip()
        or text[0] in _INDICATORS
        or ": " in text
        or " #" in text
        or text.endswith(":")
        or any(ch in "\"\\" or not ch.isprintable() for ch in text)
        or _RESERVED_SCALAR.match(text)
    ):
        # "{{var}}" placeholders start with a flow indicator, so they land here too
        return quoted(text)
    return text


def _render_step(step) -> List[str]:
    if isinstance(step, NavigateStep):
        return ["  - type: navigate", f"    value: {scalar(step.value)}"]

    if isinstance(step, WaitStep):
        return ["  - type: wait", f"    timeout: {step.timeout}"]

    if isinstance(step, InputStep):
        lines = [
            "  - type: input",
            "    target:",
            f"      css: {quoted(step.target)}",
            f"    value: {quoted(step.value)}",
        ]
        if step.optional:
            lines.append("    optional: true")
        return lines

    if isinstance(step, TapStep):
        lines = ["  - type: tap", "    target:", f"      css: {quoted(step.target)}"]
        if step.optional:
            lines.append("    optional: true")
        return lines

    if isinstance(step, ScreenshotStep):
        return ["  - type: screenshot", f"    name: {scalar(step.name)}"]

    if isinstance(step, AssertStep):
        return ["  - type: assert", "    target:", f"      css: {quoted(step.target)}"]

    return []


def render(spec: TestSpec, base_url: str) -> str:
    """Render a spec; steps that are not part of the vocabulary are skipped"""
    lines = [
        f"name: {scalar(spec.name)}",
        "platform: web",
        "",
        "config:",
        "  web:",
        f"    baseUrl: {scalar(base_url)}",
        "    headless: false",
        "",
    ]

    if spec.variables:
        lines.append("variables:")
        for key, value in spec.variables.items():
            lines.append(f"  {scalar(key)}: {scalar(value)}")
        lines.append("")

    blocks = []
    for raw_step in spec.steps:
        step = coerce_step(raw_step)
        if step is not None:
            blocks.append("\n".join(_render_step(step)))

    lines.append("steps:")
    if not blocks:
        lines[-1] = "steps: []"

    return "\n".join(lines) + "\n" + "\n\n".join(blocks) + ("\n" if blocks else "")


def count_steps(content: str) -> int:
    """Number of step blocks in rendered content"""
    return sum(1 for line in content.splitlines() if line.startswith("  - type: "))


def slugify(text: str, default: str = "test") -> str:
    """Lowercase, dash-separated form used in file and screenshot names"""
    slug = re.sub(r"[^a-z0-9]+", "-", str(text).lower()).strip("-")
    return slug or default


def make_file_name(*parts: str) -> str:
    """File name for a rendered test, e.g. login-chrome.test.yaml"""
    return "-".join(slugify(part) for part in parts) + ".test.yaml"

"""
Fallback Generator - keyword-driven test suite that needs no AI

Always produces a smoke test, then adds a fixed flow for every keyword group
found in the app description. Used whenever the AI path cannot deliver.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from config import DEFAULT_CREDENTIALS
from models import Credential, RenderedTest, TestSpec
from models_steps import AssertStep, NavigateStep, ScreenshotStep, WaitStep
from scenario_templates import login_flow, messages_flow, profile_flow, select_credentials, signup_flow
from yaml_renderer import make_file_name, render, slugify

logger = logging.getLogger(__name__)

# (file suffix, keywords, template); evaluated in this order, each independently
KEYWORD_GROUPS: List[Tuple[str, Tuple[str, ...], Callable[[str, Credential], TestSpec]]] = [
    ("login", ("login", "auth", "sign in"), login_flow),
    ("signup", ("signup", "register", "sign up"), signup_flow),
    ("messaging", ("message", "chat", "messaging"), messages_flow),
    ("profile", ("profile", "user"), profile_flow),
]


def home_smoke(label: str) -> TestSpec:
    """Open the home page, capture it and check the body rendered"""
    return TestSpec(
        name=f"Smoke Test ({label})",
        description="Home page loads",
        steps=[
            NavigateStep(value="/"),
            WaitStep(timeout=2000),
            ScreenshotStep(name=f"smoke-{slugify(label)}-home.png"),
            AssertStep(target="body"),
        ],
    )


def matched_groups(description: str) -> List[str]:
    """Names of the keyword groups present in the description"""
    text = (description or "").lower()
    return [name for name, keywords, _ in KEYWORD_GROUPS if any(word in text for word in keywords)]


def fallback(
    description: str,
    project_label: str,
    base_url: str,
    credentials: Optional[Dict[str, Credential]] = None,
) -> List[RenderedTest]:
    """Deterministic suite for a description; never empty"""
    credentials = credentials or DEFAULT_CREDENTIALS
    label = project_label or "app"
    project = slugify(label, default="app")

    tests = [RenderedTest(file_name=make_file_name(project, "smoke"), content=render(home_smoke(label), base_url))]

    wanted = set(matched_groups(description))
    for name, _, template in KEYWORD_GROUPS:
        if name not in wanted:
            continue
        spec = template(label, select_credentials(name, credentials))
        tests.append(RenderedTest(file_name=make_file_name(project, name), content=render(spec, base_url)))

    logger.info(f"[FALLBACK] Built {len(tests)} test(s) for '{label}' (groups: {', '.join(sorted(wanted)) or 'none'})")
    return tests

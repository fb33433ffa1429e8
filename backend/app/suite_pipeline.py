"""
Suite Generation Pipeline
Free-text app description -> AI provider -> extracted specs -> rendered tests,
with the keyword fallback as the safety net for every failure on the way.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ai_providers import AIProviderClient, ProviderError, call_provider
from broadcast import Notifier
from fallback_generator import fallback
from models import Credential, ProviderConfig, RenderedTest, TestSpec
from models_steps import describe_vocabulary
from response_extractor import ExtractionFailed, extract
from yaml_renderer import make_file_name, render, slugify

logger = logging.getLogger(__name__)

SOURCE_AI = "ai"
SOURCE_FALLBACK = "fallback"

SUITE_PROMPT = """You are a QA engineer writing end-to-end browser tests for a web application.

APPLICATION DESCRIPTION:
{description}

BASE URL: {base_url}

Write between 3 and 8 tests that cover the most important user flows of this application.

Each test is a JSON object:
{{"name": "short test name", "description": "what the test checks", "steps": [ ... ]}}

Each step is a JSON object with a "type" field. Use ONLY these step types and fields:
{vocabulary}

Rules:
- "navigate" values are paths relative to the base URL (e.g. "/login").
- "target" is a CSS selector; list fallbacks separated by commas.
- "timeout" is in milliseconds.
- Take a "screenshot" after each important state change; names end in ".png".

Return ONLY a JSON array of test objects, no explanations."""


def build_suite_prompt(description: str, base_url: str) -> str:
    """Instructional prompt constraining the model to the renderable vocabulary"""
    return SUITE_PROMPT.format(
        description=(description or "").strip() or "(no description given)",
        base_url=base_url,
        vocabulary=describe_vocabulary(),
    )


@dataclass
class SuiteResult:
    tests: List[RenderedTest]
    source: str  # SOURCE_AI or SOURCE_FALLBACK

    @property
    def used_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def render_specs(specs: List[TestSpec], project_label: str, base_url: str) -> List[RenderedTest]:
    """Render extracted specs with file names unique inside the suite"""
    project = slugify(project_label, default="app")
    seen: Dict[str, int] = {}
    tests = []
    for spec in specs:
        base = make_file_name(project, spec.name)
        count = seen.get(base, 0) + 1
        seen[base] = count
        file_name = base if count == 1 else base.replace(".test.yaml", f"-{count}.test.yaml")
        tests.append(RenderedTest(file_name=file_name, content=render(spec, base_url)))
    return tests


class SuiteGenerationPipeline:
    """Attempt exactly one provider, fall back to keyword templates on any failure"""

    def __init__(
        self,
        providers: Dict[str, AIProviderClient],
        notify: Optional[Notifier] = None,
        fallback_on_empty_result: bool = True,
        credentials: Optional[Dict[str, Credential]] = None,
    ):
        self.providers = providers
        self.notify = notify
        self.fallback_on_empty_result = fallback_on_empty_result
        self.credentials = credentials

    def _fallback(self, description: str, project_label: str, base_url: str, reason: str) -> SuiteResult:
        logger.info(f"[PIPELINE] Using fallback templates: {reason}")
        return SuiteResult(
            tests=fallback(description, project_label, base_url, credentials=self.credentials),
            source=SOURCE_FALLBACK,
        )

    async def run(
        self,
        description: str,
        project_label: str,
        base_url: str,
        config: ProviderConfig,
    ) -> SuiteResult:
        """Generate a suite and report where it came from"""
        if config.kind not in self.providers:
            return self._fallback(description, project_label, base_url, f"unknown provider '{config.kind}'")

        if config.is_cloud and not config.api_key:
            return self._fallback(description, project_label, base_url, f"no API key for {config.kind}")

        prompt = build_suite_prompt(description, base_url)
        try:
            raw_text = await call_provider(prompt, config, self.providers, notify=self.notify)
        except ProviderError as e:
            return self._fallback(description, project_label, base_url, str(e))

        try:
            specs = extract(raw_text)
        except ExtractionFailed as e:
            return self._fallback(description, project_label, base_url, str(e))

        if not specs and self.fallback_on_empty_result:
            return self._fallback(description, project_label, base_url, "AI returned an empty suite")

        tests = render_specs(specs, project_label, base_url)
        logger.info(f"[PIPELINE] {config.kind} produced {len(tests)} test(s)")
        return SuiteResult(tests=tests, source=SOURCE_AI)

    async def generate(
        self,
        description: str,
        project_label: str,
        base_url: str,
        config: ProviderConfig,
    ) -> List[RenderedTest]:
        result = await self.run(description, project_label, base_url, config)
        return result.tests


async def generate_suite(
    description: str,
    project_label: str,
    base_url: str,
    config: ProviderConfig,
    providers: Dict[str, AIProviderClient],
    notify: Optional[Notifier] = None,
    fallback_on_empty_result: bool = True,
) -> List[RenderedTest]:
    """Convenience wrapper around SuiteGenerationPipeline.generate"""
    pipeline = SuiteGenerationPipeline(providers, notify=notify, fallback_on_empty_result=fallback_on_empty_result)
    return await pipeline.generate(description, project_label, base_url, config)

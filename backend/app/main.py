"""
Intellyo Test Runner - HTTP/WebSocket server

Generates intellitester YAML tests (fixed scenarios or AI-written suites),
runs them through the external CLI and streams output to browser clients.
"""

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, Depends, Request, BackgroundTasks
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from dataclasses import dataclass
from typing import Dict, Optional
import logging
import os

from ai_providers import AIProviderClient, ProviderError, build_provider_registry, list_local_models
from broadcast import BroadcastService
from config import DEFAULT_BASE_URL, Settings, load_settings
from models import (
    EventType, GenerateResponse, GenerateSuiteRequest, GenerateTestRequest,
    RunTestRequest, SettingsResponse, SettingsUpdateRequest
)
from runner import RunnerError, RunOptions, TestRunner
from scenario_templates import BROWSERS, PLATFORMS, SCENARIOS, generate_scenario_test
from storage import TestFileStore
from suite_pipeline import SuiteGenerationPipeline

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything request handlers share, in place of module globals"""
    settings: Settings
    broadcaster: BroadcastService
    runner: TestRunner
    providers: Dict[str, AIProviderClient]
    pipeline: SuiteGenerationPipeline

    def store(self) -> TestFileStore:
        # test_dir can change at runtime through /api/settings
        return TestFileStore(self.settings.test_dir)


def build_context(settings: Optional[Settings] = None) -> AppContext:
    settings = settings or load_settings()
    broadcaster = BroadcastService()
    providers = build_provider_registry(ollama_url=settings.ollama_url, timeout=settings.ai_timeout)
    pipeline = SuiteGenerationPipeline(
        providers,
        notify=broadcaster.publish,
        fallback_on_empty_result=settings.fallback_on_empty_result,
        credentials=settings.credentials,
    )
    return AppContext(
        settings=settings,
        broadcaster=broadcaster,
        runner=TestRunner(settings.runner_command),
        providers=providers,
        pipeline=pipeline,
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def stream_test_run(ctx: AppContext, test_path: str, options: RunOptions):
    """Forward runner output to every WebSocket client"""
    try:
        async for chunk in ctx.runner.run_test(test_path, options):
            if chunk.finished:
                await ctx.broadcaster.publish(
                    EventType.SUCCESS if chunk.exit_code == 0 else EventType.ERROR,
                    f"Test finished with code {chunk.exit_code}",
                )
            else:
                await ctx.broadcaster.publish(EventType.OUTPUT, chunk.text)
    except RunnerError as e:
        logger.error(f"[RUNNER] {e}")
        await ctx.broadcaster.publish(EventType.ERROR, str(e))


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    context = context or build_context()

    app = FastAPI(title="Intellyo Test Runner")
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    # ============ WebSocket Logging ============
    @app.websocket("/ws")
    async def websocket_logs(websocket: WebSocket):
        shared: AppContext = websocket.app.state.context
        await websocket.accept()
        await shared.broadcaster.add(websocket)
        try:
            await shared.broadcaster.send_to(websocket, EventType.CONNECTED, "Connected to Intellyo")
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await shared.broadcaster.remove(websocket)

    # ============ Settings ============
    @app.get("/api/settings", response_model=SettingsResponse)
    async def get_settings(ctx: AppContext = Depends(get_context)):
        settings = ctx.settings
        return SettingsResponse(
            provider=settings.provider,
            has_api_key=bool(settings.api_key),
            model=settings.model,
            test_dir=settings.test_dir,
        )

    @app.post("/api/settings")
    async def update_settings(request: SettingsUpdateRequest, ctx: AppContext = Depends(get_context)):
        ctx.settings.update(
            provider=request.provider,
            api_key=request.api_key,
            model=request.model,
            test_dir=request.test_dir,
        )
        await ctx.broadcaster.publish(EventType.STATUS, "Settings updated")
        return {"success": True}

    # ============ Catalogs ============
    @app.get("/api/models")
    async def get_models(ctx: AppContext = Depends(get_context)):
        """Models installed on the local Ollama server"""
        try:
            models = await list_local_models(ctx.settings.ollama_url)
        except ProviderError as e:
            logger.info(f"[PROVIDER] {e}")
            return {"models": [], "error": "Ollama not available"}
        return {"models": models}

    @app.get("/api/browsers")
    async def get_browsers():
        return {"browsers": BROWSERS}

    @app.get("/api/platforms")
    async def get_platforms():
        return {"platforms": PLATFORMS}

    @app.get("/api/scenarios")
    async def get_scenarios():
        return {"scenarios": SCENARIOS}

    @app.get("/api/tests")
    async def list_tests(ctx: AppContext = Depends(get_context)):
        """Existing test files in the configured test directory"""
        try:
            return {"tests": ctx.store().list_tests()}
        except OSError as e:
            logger.warning(f"[STORAGE] Could not list tests: {e}")
            return {"tests": []}

    # ============ Generation ============
    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate_test(request: GenerateTestRequest, ctx: AppContext = Depends(get_context)):
        """Render one fixed scenario for a browser and write it"""
        await ctx.broadcaster.publish(
            EventType.STATUS, f"Generating {request.scenario} test for {request.browser}..."
        )

        try:
            rendered = generate_scenario_test(
                request.scenario,
                request.browser,
                request.platform,
                request.base_url or DEFAULT_BASE_URL,
                ctx.settings.credentials,
            )
            path = await ctx.store().write(rendered)
        except Exception as e:
            logger.exception("[GENERATE] Test generation failed")
            await ctx.broadcaster.publish(EventType.ERROR, str(e))
            raise HTTPException(status_code=500, detail="Test generation failed")

        await ctx.broadcaster.publish(EventType.SUCCESS, f"Test generated: {path}")
        return GenerateResponse(success=True, message="Test generated", path=path, paths=[path])

    @app.post("/api/generate-suite", response_model=GenerateResponse)
    async def generate_suite(request: GenerateSuiteRequest, ctx: AppContext = Depends(get_context)):
        """Generate a suite from an app description (AI first, templates as fallback)"""
        config = ctx.settings.provider_config(request.ai_provider, request.api_key, request.model)
        base_url = request.base_url or DEFAULT_BASE_URL

        await ctx.broadcaster.publish(
            EventType.STATUS, f"Generating test suite for {request.project_label} with {config.kind}..."
        )

        paths = []
        try:
            result = await ctx.pipeline.run(request.description, request.project_label, base_url, config)
            store = ctx.store()
            # Not atomic: files written before a failure stay on disk
            for rendered in result.tests:
                path = await store.write(rendered)
                paths.append(path)
                await ctx.broadcaster.publish(EventType.STATUS, f"Test written: {path}")
        except Exception as e:
            logger.exception("[GENERATE] Suite generation failed")
            await ctx.broadcaster.publish(EventType.ERROR, str(e))
            raise HTTPException(status_code=500, detail="Suite generation failed")

        source = "fallback templates" if result.used_fallback else config.kind
        await ctx.broadcaster.publish(EventType.SUCCESS, f"Generated {len(paths)} test(s) using {source}")
        return GenerateResponse(
            success=True,
            message=f"Generated {len(paths)} test(s)",
            paths=paths,
            fallback=result.used_fallback,
        )

    # ============ Execution ============
    @app.post("/api/run")
    async def run_test(
        request: RunTestRequest,
        background_tasks: BackgroundTasks,
        ctx: AppContext = Depends(get_context),
    ):
        """Start the external runner; output arrives over the WebSocket"""
        await ctx.broadcaster.publish(EventType.STATUS, f"Running test: {os.path.basename(request.test_path)}")
        options = RunOptions(browser=request.browser, visible=request.visible)
        background_tasks.add_task(stream_test_run, ctx, request.test_path, options)
        return {"success": True, "message": "Test started"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Browser UI, when it is shipped next to the backend
    public_dir = context.settings.public_dir
    if public_dir and os.path.isdir(public_dir):
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


app = create_app()

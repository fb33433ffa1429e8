"""
Runtime configuration for the Intellyo test runner
Values come from the environment, with backend/.env loaded first
"""

from dotenv import load_dotenv
import pathlib

# Load .env from backend folder (parent of app)
env_path = pathlib.Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import os
import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models import Credential, CredentialRole, ProviderConfig, ProviderKind

DEFAULT_PORT = 4445
DEFAULT_BASE_URL = "http://localhost:4444"
DEFAULT_RUNNER_COMMAND = "npx intellitester run"

# Development defaults - localhost only
DEFAULT_CORS_ORIGINS = [
    "http://localhost:4445",
    "http://127.0.0.1:4445",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def _load_credentials() -> Dict[str, Credential]:
    return {
        CredentialRole.STANDARD_USER.value: Credential(
            email=os.getenv("TEST_USER_EMAIL", "newuser@test.com"),
            password=os.getenv("TEST_USER_PASSWORD", "Leonidas12!"),
        ),
        CredentialRole.PRIVILEGED_USER.value: Credential(
            email=os.getenv("TEST_ADMIN_EMAIL", "newcreator@test.com"),
            password=os.getenv("TEST_ADMIN_PASSWORD", "Leonidas12!"),
        ),
    }


# Read once at import; treated as read-only afterwards
DEFAULT_CREDENTIALS = _load_credentials()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Process-wide settings; provider fields can be changed at runtime"""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    test_dir: str = "intellitester-tests"
    provider: str = ProviderKind.OLLAMA.value
    api_key: str = ""
    model: str = ""
    ollama_url: str = "http://localhost:11434"
    ai_timeout: float = 120.0
    runner_command: List[str] = field(default_factory=lambda: shlex.split(DEFAULT_RUNNER_COMMAND))
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    public_dir: Optional[str] = None
    log_level: str = "INFO"
    fallback_on_empty_result: bool = True
    credentials: Dict[str, Credential] = field(default_factory=lambda: dict(DEFAULT_CREDENTIALS))

    def update(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        test_dir: Optional[str] = None,
    ):
        """Apply non-empty values; last write wins"""
        if provider:
            self.provider = provider
        if api_key:
            self.api_key = api_key
        if model:
            self.model = model
        if test_dir:
            self.test_dir = test_dir

    def provider_config(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ) -> ProviderConfig:
        """Request-level values override the process-wide defaults"""
        return ProviderConfig(
            kind=(provider or self.provider).strip().lower(),
            api_key=api_key or self.api_key or None,
            model=model or self.model or None,
        )


def load_settings() -> Settings:
    """Build settings from environment variables"""
    settings = Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", str(DEFAULT_PORT))),
        test_dir=os.getenv("TEST_DIR", "intellitester-tests"),
        provider=os.getenv("AI_PROVIDER", ProviderKind.OLLAMA.value),
        api_key=os.getenv("INTELLYO_API_KEY", ""),
        model=os.getenv("AI_MODEL", ""),
        ollama_url=os.getenv("OLLAMA_URL", "http://localhost:11434").rstrip("/"),
        ai_timeout=float(os.getenv("AI_TIMEOUT", "120")),
        runner_command=shlex.split(os.getenv("TEST_RUNNER_COMMAND", DEFAULT_RUNNER_COMMAND)),
        public_dir=os.getenv("PUBLIC_DIR") or str(pathlib.Path(__file__).parent.parent / "public"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        fallback_on_empty_result=_env_bool("FALLBACK_ON_EMPTY_RESULT", True),
        credentials=dict(DEFAULT_CREDENTIALS),
    )

    # In production, set CORS_ORIGINS to comma-separated allowed origins
    origins = _env_list("CORS_ORIGINS")
    if origins:
        settings.cors_origins = origins

    return settings

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from enum import Enum


class ProviderKind(str, Enum):
    """AI backends a suite can be generated with"""
    OLLAMA = "ollama"  # local model server
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


CLOUD_PROVIDERS = {ProviderKind.ANTHROPIC.value, ProviderKind.OPENAI.value}


class EventType(str, Enum):
    """Message types pushed to WebSocket subscribers"""
    CONNECTED = "connected"
    STATUS = "status"
    OUTPUT = "output"
    SUCCESS = "success"
    ERROR = "error"


class CredentialRole(str, Enum):
    STANDARD_USER = "standard_user"
    PRIVILEGED_USER = "privileged_user"


class Credential(BaseModel):
    """Login used by the generated flows"""
    email: str
    password: str


class ProviderConfig(BaseModel):
    """Resolved provider settings for a single generation request"""
    kind: str = ProviderKind.OLLAMA.value
    api_key: Optional[str] = None
    model: Optional[str] = None

    @property
    def is_cloud(self) -> bool:
        return self.kind in CLOUD_PROVIDERS


class TestSpec(BaseModel):
    """A test before rendering; steps may be step models or raw AI mappings"""
    __test__ = False

    name: str
    description: Optional[str] = None
    variables: Dict[str, str] = {}
    steps: List[Any] = []


class RenderedTest(BaseModel):
    """Rendered test definition, ready to be written to the test directory"""
    file_name: str
    content: str


class BroadcastEvent(BaseModel):
    type: EventType
    message: str


# ============ API payloads ============

class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SettingsUpdateRequest(ApiModel):
    provider: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    test_dir: Optional[str] = None


class SettingsResponse(ApiModel):
    provider: str
    has_api_key: bool
    model: str
    test_dir: str


class GenerateTestRequest(ApiModel):
    """Render one of the fixed scenarios"""
    scenario: str = "smoke"
    browser: str = "chrome"
    platform: str = "desktop"
    base_url: Optional[str] = None
    ai_provider: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None


class GenerateSuiteRequest(ApiModel):
    """Generate a suite from a free-text app description"""
    description: str = ""
    project_label: str = Field(default="app")
    base_url: Optional[str] = None
    ai_provider: Optional[str] = None
    api_key: Optional[str] = None
    model: Optional[str] = None


class RunTestRequest(ApiModel):
    test_path: str
    browser: Optional[str] = None
    visible: bool = False


class GenerateResponse(ApiModel):
    success: bool
    message: str
    path: Optional[str] = None
    paths: List[str] = []
    fallback: bool = False

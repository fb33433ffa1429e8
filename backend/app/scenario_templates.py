"""
Fixed Scenario Templates
Pre-built browser flows (login, signup, messages, ...) rendered to test files
"""

from typing import Callable, Dict, List, Tuple

from models import Credential, CredentialRole, RenderedTest, TestSpec
from models_steps import AssertStep, InputStep, NavigateStep, ScreenshotStep, TapStep, WaitStep
from yaml_renderer import make_file_name, render, slugify

EMAIL_SELECTOR = "input[type='email'], input[name='email'], #email"
PASSWORD_SELECTOR = "input[type='password'], input[name='password'], #password"
LOGIN_BUTTON_SELECTOR = "button[type='submit'], .login-button"

PRIVILEGED_MARKERS = ("creator", "admin")

BROWSERS = [
    {"id": "chrome", "name": "Chrome", "icon": "🌐"},
    {"id": "firefox", "name": "Firefox", "icon": "🦊"},
    {"id": "safari", "name": "Safari", "icon": "🧭"},
]

PLATFORMS = [
    {"id": "desktop", "name": "Desktop", "icon": "🖥️"},
    {"id": "mobile", "name": "Mobile", "icon": "📱"},
    {"id": "tablet", "name": "Tablet", "icon": "📱"},
]

SCENARIOS = [
    {"id": "login", "name": "Login Flow", "description": "Test user login with email/password"},
    {"id": "signup", "name": "Signup Flow", "description": "Test user registration"},
    {"id": "messages", "name": "Send Message", "description": "Test sending text messages"},
    {"id": "media", "name": "Send Media", "description": "Test sending images/videos"},
    {"id": "profile", "name": "View Profile", "description": "Test viewing user profiles"},
    {"id": "checkout", "name": "Checkout", "description": "Test purchase flow"},
    {"id": "settings", "name": "Settings", "description": "Test user settings"},
    {"id": "admin", "name": "Admin Dashboard", "description": "Test admin pages"},
    {"id": "smoke", "name": "Smoke Test", "description": "Quick test of all pages"},
]

DEFAULT_SCENARIO = "smoke"

SMOKE_PUBLIC_PAGES = [
    ("/", "home"),
    ("/login", "login"),
    ("/signup", "signup"),
    ("/terms", "terms"),
    ("/privacy", "privacy"),
    ("/creators", "creators"),
]

SMOKE_AUTHENTICATED_PAGES = [
    ("/profile", "profile"),
    ("/settings", "settings"),
    ("/messages", "messages"),
    ("/checkout", "checkout"),
    ("/subscriptions", "subscriptions"),
    ("/feed", "feed"),
    ("/discover", "discover"),
    ("/notifications", "notifications"),
    ("/wallet", "wallet"),
    ("/admin", "admin"),
    ("/admin/agencies", "admin-agencies"),
    ("/admin/creators", "admin-creators"),
]


def select_credentials(scenario: str, credentials: Dict[str, Credential]) -> Credential:
    """Privileged login for creator/admin scenarios, standard login otherwise"""
    if any(marker in scenario for marker in PRIVILEGED_MARKERS):
        return credentials[CredentialRole.PRIVILEGED_USER.value]
    return credentials[CredentialRole.STANDARD_USER.value]


def _login_variables(creds: Credential) -> Dict[str, str]:
    return {"testEmail": creds.email, "testPassword": creds.password}


def _login_steps(email_var: str = "testEmail", password_var: str = "testPassword", settle_ms: int = 2000) -> list:
    return [
        NavigateStep(value="/login"),
        WaitStep(timeout=settle_ms),
        InputStep(target=EMAIL_SELECTOR, value="{{%s}}" % email_var),
        InputStep(target=PASSWORD_SELECTOR, value="{{%s}}" % password_var),
        TapStep(target=LOGIN_BUTTON_SELECTOR),
        WaitStep(timeout=3000),
    ]


def _visit(path: str, shot: str, wait_ms: int = 2000) -> list:
    return [NavigateStep(value=path), WaitStep(timeout=wait_ms), ScreenshotStep(name=shot)]


def login_flow(label: str, creds: Credential) -> TestSpec:
    tag = slugify(label)
    return TestSpec(
        name=f"Login Flow Test ({label})",
        variables=_login_variables(creds),
        steps=[
            NavigateStep(value="/login"),
            WaitStep(timeout=2000),
            ScreenshotStep(name=f"login-{tag}-initial.png"),
            InputStep(target=EMAIL_SELECTOR, value="{{testEmail}}"),
            InputStep(target=PASSWORD_SELECTOR, value="{{testPassword}}"),
            ScreenshotStep(name=f"login-{tag}-filled.png"),
            TapStep(target=LOGIN_BUTTON_SELECTOR),
            WaitStep(timeout=3000),
            ScreenshotStep(name=f"login-{tag}-result.png"),
        ],
    )


def signup_flow(label: str, creds: Credential) -> TestSpec:
    tag = slugify(label)
    return TestSpec(
        name=f"Signup Flow Test ({label})",
        variables={"username": "user_{{uuid}}", "email": creds.email, "password": creds.password},
        steps=[
            NavigateStep(value="/signup"),
            WaitStep(timeout=2000),
            ScreenshotStep(name=f"signup-{tag}-initial.png"),
            InputStep(target="input[type='email'], input[name='email']", value="{{email}}"),
            InputStep(target="input[type='password'], input[name='password']", value="{{password}}"),
            ScreenshotStep(name=f"signup-{tag}-filled.png"),
            TapStep(target="button[type='submit']"),
            WaitStep(timeout=3000),
            ScreenshotStep(name=f"signup-{tag}-result.png"),
        ],
    )


def messages_flow(label: str, creds: Credential) -> TestSpec:
    tag = slugify(label)
    variables = _login_variables(creds)
    variables["testMessage"] = "Hello from automated test {{uuid}}"
    return TestSpec(
        name=f"Send Message Test ({label})",
        variables=variables,
        steps=_login_steps() + [
            ScreenshotStep(name=f"messages-{tag}-after-login.png"),
            *_visit("/messages", f"messages-{tag}-inbox.png"),
            InputStep(target="textarea, input[type='text'], .message-input", value="{{testMessage}}", optional=True),
            ScreenshotStep(name=f"messages-{tag}-compose.png"),
            TapStep(target="button[type='submit'], .send-button", optional=True),
            WaitStep(timeout=2000),
            ScreenshotStep(name=f"messages-{tag}-sent.png"),
        ],
    )


def media_flow(label: str, creds: Credential) -> TestSpec:
    tag = slugify(label)
    return TestSpec(
        name=f"Send Media Test ({label})",
        variables=_login_variables(creds),
        steps=_login_steps() + [
            ScreenshotStep(name=f"media-{tag}-after-login.png"),
            *_visit("/messages", f"media-{tag}-start.png"),
            TapStep(
                target=".media-button, .upload-button, [data-testid='media-upload'], .attach-button",
                optional=True,
            ),
            WaitStep(timeout=1000),
            ScreenshotStep(name=f"media-{tag}-upload-dialog.png"),
        ],
    )


def profile_flow(label: str, creds: Credential) -> TestSpec:
    tag = slugify(label)
    return TestSpec(
        name=f"Profile Test ({label})",
        variables=_login_variables(creds),
        steps=_login_steps() + [
            ScreenshotStep(name=f"profile-{tag}-after-login.png"),
            *_visit("/profile", f"profile-{tag}-main.png"),
            AssertStep(target="body"),
            ScreenshotStep(name=f"profile-{tag}-content.png"),
        ],
    )


def _page_tour(title: str, prefix: str, label: str, variables: Dict[str, str],
               login: list, pages: List[Tuple[str, str]]) -> TestSpec:
    tag = slugify(label)
    steps = login + [ScreenshotStep(name=f"{prefix}-{tag}-after-login.png")]
    for path, shot in pages:
        steps.extend(_visit(path, f"{prefix}-{tag}-{shot}.png"))
    return TestSpec(name=f"{title} ({label})", variables=variables, steps=steps)


def checkout_flow(label: str, creds: Credential) -> TestSpec:
    return _page_tour(
        "Checkout Test", "checkout", label, _login_variables(creds), _login_steps(),
        [("/checkout", "main"), ("/subscriptions", "subscriptions"), ("/wallet", "wallet")],
    )


def settings_flow(label: str, creds: Credential) -> TestSpec:
    return _page_tour(
        "Settings Test", "settings", label, _login_variables(creds), _login_steps(),
        [("/settings", "main"), ("/notifications", "notifications"), ("/profile", "profile")],
    )


def admin_flow(label: str, creds: Credential) -> TestSpec:
    return _page_tour(
        "Admin Dashboard Test", "admin", label,
        {"adminEmail": creds.email, "adminPassword": creds.password},
        _login_steps("adminEmail", "adminPassword"),
        [
            ("/admin", "dashboard"),
            ("/admin/agencies", "agencies"),
            ("/admin/creators", "creators"),
            ("/admin/users", "users"),
            ("/admin/posts", "posts"),
        ],
    )


def smoke_flow(label: str, creds: Credential) -> TestSpec:
    """Visit every public page, log in, then visit every authenticated page"""
    tag = slugify(label)
    steps = []
    shot_number = 0

    for index, (path, shot) in enumerate(SMOKE_PUBLIC_PAGES):
        shot_number += 1
        steps.extend(_visit(path, f"smoke-{tag}-{shot_number:02d}-{shot}.png", 2000 if index == 0 else 1500))

    steps.extend(_login_steps(settle_ms=1500))
    shot_number += 1
    steps.append(ScreenshotStep(name=f"smoke-{tag}-{shot_number:02d}-after-login.png"))

    for path, shot in SMOKE_AUTHENTICATED_PAGES:
        shot_number += 1
        steps.extend(_visit(path, f"smoke-{tag}-{shot_number:02d}-{shot}.png", 1500))

    return TestSpec(name=f"Smoke Test ({label})", variables=_login_variables(creds), steps=steps)


SCENARIO_BUILDERS: Dict[str, Callable[[str, Credential], TestSpec]] = {
    "login": login_flow,
    "signup": signup_flow,
    "messages": messages_flow,
    "media": media_flow,
    "profile": profile_flow,
    "checkout": checkout_flow,
    "settings": settings_flow,
    "admin": admin_flow,
    "smoke": smoke_flow,
}


def build_scenario_spec(scenario: str, label: str, credentials: Dict[str, Credential]) -> TestSpec:
    """Spec for a scenario id; unknown ids fall back to the smoke tour"""
    builder = SCENARIO_BUILDERS.get(scenario, SCENARIO_BUILDERS[DEFAULT_SCENARIO])
    return builder(label, select_credentials(scenario, credentials))


def generate_scenario_test(
    scenario: str,
    browser: str,
    platform: str,
    base_url: str,
    credentials: Dict[str, Credential],
) -> RenderedTest:
    """Render a fixed scenario for one browser

    `platform` is accepted for the UI's sake; every template targets the web
    runner.
    """
    spec = build_scenario_spec(scenario, browser, credentials)
    return RenderedTest(file_name=make_file_name(scenario, browser), content=render(spec, base_url))

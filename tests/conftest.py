"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncGenerator

import pytest

from legitly.trust.rate_limiter import get_registry

# Keep a developer .env from leaking credentials or overrides into tests.
LEGITLY_ENV_VARS = (
    "LEGITLY_ENABLED",
    "RISK_THRESHOLD",
    "MODELS_ENABLED",
    "TRUST_SOURCES_ENABLED",
    "MODELS",
    "TRUST_SOURCES",
    "GOOGLE_SAFE_BROWSING_API_KEY",
    "VIRUSTOTAL_API_KEY",
    "PHISHTANK_API_KEY",
    "SAFE_BROWSING_DAILY_QUOTA",
    "VIRUSTOTAL_DAILY_QUOTA",
    "PHISHTANK_DAILY_QUOTA",
    "VIRUSTOTAL_SUBMIT_UNKNOWN",
    "ANALYSIS_TIMEOUT_MS",
    "MAX_CONCURRENT_CHECKS",
    "CACHE_EXPIRY_MINUTES",
    "CACHE_MAX_ENTRIES",
    "SHOW_NOTIFICATIONS",
    "AUTO_BLOCK",
    "DATA_DIR",
    "CONFIG_DIR",
    "MODEL_WEIGHTS_FILE",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in LEGITLY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("legitly.config.load_dotenv", lambda *a, **k: False)
    get_registry().reset_all()
    yield
    get_registry().reset_all()


@pytest.fixture(scope="session")
def event_loop() -> AsyncGenerator[asyncio.AbstractEventLoop, None]:
    """Provide a shared event loop for async tests and fixtures."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        loop.close()


def _get_loop(request: pytest.FixtureRequest) -> asyncio.AbstractEventLoop:
    try:
        loop = request.getfixturevalue("event_loop")
    except pytest.FixtureLookupError:
        loop = asyncio.new_event_loop()
    if loop.is_closed():
        loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        loop = testargs.get("event_loop") or asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        loop.run_until_complete(pyfuncitem.obj(**testargs))
        return True
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_fixture_setup(fixturedef, request):  # type: ignore[override]
    func = fixturedef.func
    if inspect.iscoroutinefunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        return loop.run_until_complete(func(**kwargs))

    if inspect.isasyncgenfunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        agen = func(**kwargs)
        value = loop.run_until_complete(agen.__anext__())

        def finalize() -> None:
            try:
                loop.run_until_complete(agen.__anext__())
            except StopAsyncIteration:
                pass

        request.addfinalizer(finalize)
        return value

    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")

# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import navgate  # noqa: F401
except ImportError:
    raise ImportError("navgate is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from navgate.engine import DecisionEngine
from navgate.interceptor import NavigationInterceptor
from tests._fakes import FakeClassifier, FakeNotifier, FakePrompt, FakeSurface


@pytest.fixture(autouse=True)
def _reset_telemetry():
    """Telemetry is a module singleton; never leak a collector between tests."""
    from navgate import telemetry

    telemetry._reset_for_testing()
    yield
    telemetry._reset_for_testing()


@pytest.fixture(autouse=True)
def _no_real_classifier(monkeypatch):
    """Safety net: unit tests must not reach a real classifier service.

    Tests that build a ClassifierClient pass an ``httpx.MockTransport``;
    anything else gets a clear error instead of a network call.
    """
    import httpx

    real_send = httpx.AsyncClient.send

    async def _guarded_send(self, request, *args, **kwargs):
        if isinstance(self._transport, httpx.MockTransport):
            return await real_send(self, request, *args, **kwargs)
        raise RuntimeError(f"Test tried to reach a real classifier at {request.url}. Use httpx.MockTransport.")

    monkeypatch.setattr(httpx.AsyncClient, "send", _guarded_send)


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def prompt():
    return FakePrompt()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def engine(classifier, prompt, notifier):
    return DecisionEngine(classifier, prompt, notifier=notifier)


@pytest.fixture
def interceptor(engine):
    return NavigationInterceptor(engine)


@pytest.fixture
def surface(interceptor):
    """Renderer that routes every load back through the interceptor."""
    fake = FakeSurface(interceptor, current_url="https://start.test/")
    interceptor.attach(fake)
    return fake

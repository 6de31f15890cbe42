"""Shared pytest fixtures for salonbot tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import build_harness  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_webhook_router():
    """Drop the lazily built webhook router between tests.

    The router is a module-level singleton; a test that builds the real
    one must not leak it into the next test.
    """
    import salonbot.api.routes.webhooks_whatsapp as webhooks_module

    webhooks_module._webhook_router = None
    yield
    webhooks_module._webhook_router = None


@pytest.fixture
def harness():
    """WebhookRouter wired to in-memory fakes."""
    return build_harness()

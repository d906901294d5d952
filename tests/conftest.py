"""
Pytest configuration and shared fixtures.
"""

import pytest
import pytest_asyncio

from weekly_feedback.database import Database, set_database
from weekly_feedback.runtime import RuntimeConfig

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture
def runtime_config():
    """Runtime config with two allowed domains and one super admin."""
    return RuntimeConfig(
        timezone="Europe/London",
        form_url="https://feedback.kubapay.com/",
        allowed_domains=("kubapay.com", "voqa.com"),
        super_admin_emails=("root@kubapay.com",),
        analysis_timeout_seconds=5.0,
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'feedback.db'}"


@pytest_asyncio.fixture
async def db(database_url):
    """Real SQLite database installed as the singleton for the test."""
    database = Database(database_url)
    assert await database.initialize()
    set_database(database)
    yield database
    await database.close()
    set_database(None)


@pytest_asyncio.fixture
async def workspace(db, runtime_config):
    """Workspace managed by boss@kubapay.com."""
    from weekly_feedback.services.tenancy import TenantRegistry

    registry = TenantRegistry(runtime_config)
    return await registry.resolve_or_create_workspace("boss@kubapay.com", "Bea Boss")


@pytest.fixture
def sample_answers():
    """Sample submission answers."""
    return {
        "accomplishments": "Shipped the billing export\nFixed flaky CI",
        "blockers": "Waiting on legal review",
        "priorities": "Ship X",
        "shoutouts": "Sam for the late-night deploy help",
    }

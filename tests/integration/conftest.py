from __future__ import annotations

import os

import pytest

from discovery_orchestrator.storage.postgres import PostgresTaskStorage


@pytest.fixture
def postgres_storage() -> PostgresTaskStorage:
    if os.getenv("RUN_POSTGRES_INTEGRATION_TESTS") != "1":
        pytest.skip(
            "Set RUN_POSTGRES_INTEGRATION_TESTS=1 and DISCOVERY_ORCHESTRATOR_DATABASE_URL "
            "to run integration tests against PostgreSQL."
        )
    database_url = os.getenv("DISCOVERY_ORCHESTRATOR_DATABASE_URL")
    if not database_url:
        pytest.skip("DISCOVERY_ORCHESTRATOR_DATABASE_URL is required for integration tests.")

    storage = PostgresTaskStorage(database_url)
    storage.migrate()
    return storage

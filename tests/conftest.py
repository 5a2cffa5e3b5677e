from __future__ import annotations

import pytest

from discovery_orchestrator.storage.memory import InMemoryDocumentStore, InMemoryTaskStorage
from discovery_orchestrator.storage.models import MatterRecord
from tests.factories import (
    DESTRUCTION_EMAIL,
    FINANCIAL_MEMO,
    LUNCH_NOTE,
    MATTER_ID,
    PRIVILEGED_EMAIL,
    make_document,
)


@pytest.fixture
def task_storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        documents=[
            make_document("doc-privileged", PRIVILEGED_EMAIL),
            make_document("doc-financial", FINANCIAL_MEMO),
            make_document("doc-destruction", DESTRUCTION_EMAIL),
            make_document("doc-lunch", LUNCH_NOTE),
        ],
        matters=[
            MatterRecord(id=MATTER_ID, name="Acme v. Widget Co", client_name="Acme Corp"),
        ],
    )

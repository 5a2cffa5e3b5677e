"""Collaborators shared by the review workflow nodes."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, TypeVar

from discovery_orchestrator.agents.context import ExecutionContext
from discovery_orchestrator.errors import TaskCancelledError
from discovery_orchestrator.review.classifiers import ClassifierSet
from discovery_orchestrator.storage.base import DocumentStore
from discovery_orchestrator.storage.models import DocumentRecord

logger = logging.getLogger(__name__)

VerdictT = TypeVar("VerdictT")


@dataclass(frozen=True)
class ReviewDependencies:
    documents: DocumentStore
    classifiers: ClassifierSet
    context: ExecutionContext
    max_workers: int = 1
    document_char_budget: int = 4000

    def classify_each(
        self,
        documents: list[DocumentRecord],
        classify: Callable[[DocumentRecord], VerdictT],
        fallback: Callable[[DocumentRecord], VerdictT],
        *,
        stage: str,
    ) -> list[VerdictT]:
        """Classify documents in input order, checking for cancellation before each one.

        An exception from `classify` degrades that document to `fallback`;
        cancellation and errors from `fallback` propagate.
        """

        def _one(document: DocumentRecord) -> VerdictT:
            self.context.checkpoint()
            try:
                return classify(document)
            except TaskCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "review event=classifier_error stage=%s task_id=%s document_id=%s error=%s",
                    stage,
                    self.context.task_id,
                    document.id,
                    exc,
                )
                return fallback(document)

        if self.max_workers <= 1 or len(documents) <= 1:
            return [_one(document) for document in documents]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(_one, documents))

"""Validation and regeneration of stored n-gram records.

Each indexed (document, field) pair moves through::

    UNCHECKED -> CONSISTENT | MISMATCHED | MISSING -> REGENERATED

A pair is MISMATCHED when a stored record's ``n`` differs from the
configured ``n`` (fatal instead when the field sets ``fail_on_mismatch``),
and MISSING when no record exists. A single MISMATCHED or MISSING pair
regenerates every record of the document type: all records of the
collection are replaced in one ``replace_collection`` call, never patched
per field. Fields whose value is ``None`` are not indexed and not checked.

Running the workflow again right after a regeneration finds every pair
CONSISTENT and writes nothing.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

import structlog

from ..cache.cache_manager import SearchCacheManager
from ..common.logging import search_context
from ..common.metrics import MetricsCollector
from ..errors import FuzzyMatchError, InvalidFieldConfigurationError, SizeMismatchError
from ..models import NGramRecord
from ..ngram.generator import NGramGenerator
from ..schema import DocumentTypeSpec, SchemaRegistry
from ..store.base import DocumentRepository, NGramStore

logger = structlog.get_logger("indexing.indexer")


class FieldState(Enum):
    UNCHECKED = "unchecked"
    CONSISTENT = "consistent"
    MISMATCHED = "mismatched"
    MISSING = "missing"
    REGENERATED = "regenerated"


@dataclass
class ValidationReport:
    """Outcome of validating (and possibly regenerating) one document type."""
    document_type: str
    states: Dict[Tuple[str, str], FieldState] = field(default_factory=dict)
    regenerated: bool = False
    records_written: int = 0
    error: Optional[str] = None

    def count(self, state: FieldState) -> int:
        return sum(1 for s in self.states.values() if s is state)

    @property
    def needs_regeneration(self) -> bool:
        return any(s in (FieldState.MISMATCHED, FieldState.MISSING) for s in self.states.values())

    def summary(self) -> Dict[str, int]:
        return {state.value: self.count(state) for state in FieldState if self.count(state)}


class NGramIndexer:
    """Keeps stored n-grams consistent with the registered field specs.

    Parameters
    - schema: Registered document types and their n-gram fields
    - ngram_store: Store holding the ``NGramRecord``s
    - repositories: Document repository per document type name
    - generator: N-gram generator (default instance if omitted)
    - cache_manager: When given, cached scores of a regenerated collection
      are invalidated
    - metrics: Optional metrics collector
    """

    def __init__(
        self,
        schema: SchemaRegistry,
        ngram_store: NGramStore,
        repositories: Mapping[str, DocumentRepository],
        generator: Optional[NGramGenerator] = None,
        cache_manager: Optional[SearchCacheManager] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.schema = schema
        self.ngram_store = ngram_store
        self.repositories = dict(repositories)
        self.generator = generator or NGramGenerator()
        self.cache_manager = cache_manager
        self.metrics = metrics

    def _repository(self, document_type: str) -> DocumentRepository:
        try:
            return self.repositories[document_type]
        except KeyError:
            raise InvalidFieldConfigurationError(
                "No document repository registered", document_type=document_type
            ) from None

    async def validate(self, document_type: str) -> ValidationReport:
        """Classify every indexed (document, field) pair without writing.

        Raises ``SizeMismatchError`` for a mismatch on a field with
        ``fail_on_mismatch`` set.
        """
        spec = self.schema.get(document_type)
        repository = self._repository(document_type)
        report = ValidationReport(document_type=document_type)

        for document in await repository.find_all():
            document_id = repository.document_id(document)
            for field_spec in spec.fields:
                if repository.field_value(document, field_spec.name) is None:
                    continue
                report.states[(document_id, field_spec.name)] = FieldState.UNCHECKED

                existing = [
                    record
                    for record in await self.ngram_store.find_by_document_id_and_field(document_id, field_spec.name)
                    if record.collection_name == document_type
                ]
                if not existing:
                    state = FieldState.MISSING
                else:
                    stale = next((record for record in existing if record.n != field_spec.n), None)
                    if stale is None:
                        state = FieldState.CONSISTENT
                    elif field_spec.fail_on_mismatch:
                        raise SizeMismatchError(
                            document_type=document_type,
                            field=field_spec.name,
                            document_id=document_id,
                            stored_n=stale.n,
                            expected_n=field_spec.n,
                        )
                    else:
                        state = FieldState.MISMATCHED
                        logger.warning(
                            "NGram size mismatch, scheduling regeneration",
                            document_type=document_type,
                            document_id=document_id,
                            field=field_spec.name,
                            stored_n=stale.n,
                            expected_n=field_spec.n,
                        )
                report.states[(document_id, field_spec.name)] = state

        return report

    def build_records(
        self,
        spec: DocumentTypeSpec,
        repository: DocumentRepository,
        documents: List[object],
    ) -> List[NGramRecord]:
        """Generate one record per (document, configured field) with a value."""
        records = []
        for document in documents:
            document_id = repository.document_id(document)
            for field_spec in spec.fields:
                value = repository.field_value(document, field_spec.name)
                if value is None:
                    continue
                records.append(NGramRecord.create(
                    document_id=document_id,
                    collection_name=spec.name,
                    field_name=field_spec.name,
                    n=field_spec.n,
                    ngrams=self.generator.generate(value, field_spec.n),
                ))
        return records

    async def regenerate(self, document_type: str) -> List[NGramRecord]:
        """Replace every n-gram record of ``document_type`` with fresh ones."""
        spec = self.schema.get(document_type)
        repository = self._repository(document_type)

        records = self.build_records(spec, repository, await repository.find_all())
        await self.ngram_store.replace_collection(document_type, records)
        if self.metrics:
            self.metrics.record_store_operation("replace_collection", document_type)
        if self.cache_manager:
            self.cache_manager.invalidate_collection(document_type)

        logger.info("NGrams regenerated", document_type=document_type, records=len(records))
        return records

    async def validate_and_reindex(self, document_type: str) -> ValidationReport:
        """Validate ``document_type`` and regenerate it when anything is off."""
        with search_context(document_type=document_type):
            return await self._validate_and_reindex(document_type)

    async def _validate_and_reindex(self, document_type: str) -> ValidationReport:
        start_time = time.time()
        try:
            report = await self.validate(document_type)
            if report.needs_regeneration:
                records = await self.regenerate(document_type)
                report.regenerated = True
                report.records_written = len(records)
                for key in report.states:
                    report.states[key] = FieldState.REGENERATED
                outcome = "regenerated"
            else:
                outcome = "consistent"
                logger.info("No NGram mismatches or missing data", document_type=document_type)
        except FuzzyMatchError:
            if self.metrics:
                self.metrics.record_reindex(document_type, "failed")
            raise

        if self.metrics:
            self.metrics.record_reindex(document_type, outcome)
        logger.info(
            "NGram validation completed",
            document_type=document_type,
            outcome=outcome,
            pairs=len(report.states),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return report

    async def validate_all(self, raise_on_error: bool = True) -> Dict[str, ValidationReport]:
        """Run ``validate_and_reindex`` for every registered document type.

        With ``raise_on_error=False`` a failing type is logged, recorded in
        its report's ``error``, and the remaining types still run.
        """
        reports: Dict[str, ValidationReport] = {}
        for spec in self.schema:
            if spec.name not in self.repositories:
                logger.info("Skipping document type without repository", document_type=spec.name)
                continue
            try:
                reports[spec.name] = await self.validate_and_reindex(spec.name)
            except FuzzyMatchError as e:
                logger.error("NGram validation failed", document_type=spec.name, error=str(e))
                if raise_on_error:
                    raise
                reports[spec.name] = ValidationReport(document_type=spec.name, error=str(e))
        return reports

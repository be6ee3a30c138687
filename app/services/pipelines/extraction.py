"""Usage: extraction pipeline (rules -> transaction -> mapping store)."""

from __future__ import annotations

import logging
import time
from typing import Sequence

from app.schemas.extraction import RuleEngineResult
from app.schemas.fragments import SourceFragment
from app.schemas.rules import LayoutMap
from app.services.mapping.store import TransactionStore
from app.services.mapping.transactions import extraction_transaction
from app.services.rules.rule_engine import RuleEngine

logger = logging.getLogger(__name__)


class ExtractionPipeline:
    """Run a layout map over fragments and record the result as one undo step."""

    def __init__(self, *, rule_engine: RuleEngine | None = None) -> None:
        self.rule_engine = rule_engine or RuleEngine()

    def run(
        self,
        fragments: Sequence[SourceFragment],
        layout_map: LayoutMap,
        *,
        store: TransactionStore | None = None,
    ) -> RuleEngineResult:
        start_time = time.perf_counter()
        logger.info(
            "Extraction started: layout=%s fields=%d fragments=%d",
            layout_map.id,
            len(layout_map.fields),
            len(fragments),
        )

        result = self.rule_engine.extract(layout_map.fields, fragments)
        logger.info(
            "Extraction finished: matched=%d unmatched_rules=%d duration=%.4fs",
            len(result.extractions),
            len(result.unmatched_rule_ids),
            time.perf_counter() - start_time,
        )

        if store is not None:
            transaction = extraction_transaction(result, store.structured_document)
            if store.apply(transaction, fragments):
                logger.info("Extraction applied to mapping store: %d fields", len(transaction.operations))
        return result

"""Keyword-based request classification"""

from typing import Optional

from .catalog import SectorCatalog, fold_text
from ...core.exceptions import ClassificationError
from ...models.routing import (
    Classification,
    Complexity,
    RequestContext,
    Sector,
    TaskType,
)

HIGH_COMPLEXITY_LENGTH = 500
MEDIUM_COMPLEXITY_LENGTH = 100
DEFAULT_LANGUAGE = "en"


class RequestClassifier:
    """Derive a Classification from a request context

    Pure and deterministic: no I/O and no state besides the catalog.
    Matching is substring based on lower-cased, accent-folded text, so
    "banque" inside any longer sentence always counts as banking.
    """

    def __init__(self, catalog: SectorCatalog, default_sector: Optional[Sector] = None):
        self.catalog = catalog
        self.default_sector = default_sector or catalog.default_sector

    def classify(self, ctx: RequestContext) -> Classification:
        folded = fold_text(ctx.message)
        return Classification(
            sector=self.detect_sector(ctx, folded),
            task_type=self.detect_task_type(folded),
            complexity=self.detect_complexity(ctx.message),
            requires_realtime=any(k in folded for k in self.catalog.realtime_keywords),
            detected_language=self.detect_language(ctx.message),
        )

    def detect_sector(self, ctx: RequestContext, folded_message: str) -> Sector:
        """Hint, then message keywords, then current sector alias, then default"""
        sector = (
            ctx.sector_hint
            or self._match_keywords(folded_message)
            or self.catalog.resolve_alias(ctx.current_sector)
            or self.default_sector
        )
        return self._with_profile(sector)

    def _match_keywords(self, folded_message: str) -> Optional[Sector]:
        for profile in self.catalog.sectors:
            if any(keyword in folded_message for keyword in profile.keywords):
                return profile.sector
        return None

    def _with_profile(self, sector: Sector) -> Sector:
        try:
            self.catalog.profile(sector)
            return sector
        except ClassificationError:
            if sector == self.default_sector:
                raise
        # A sector without a catalog entry is mapped to the default
        self.catalog.profile(self.default_sector)
        return self.default_sector

    def detect_task_type(self, folded_message: str) -> TaskType:
        for task_type, keywords in self.catalog.tasks:
            if any(keyword in folded_message for keyword in keywords):
                return task_type
        return TaskType.CHAT

    @staticmethod
    def detect_complexity(message: str) -> Complexity:
        length = len(message)
        if length > HIGH_COMPLEXITY_LENGTH:
            return Complexity.HIGH
        if length > MEDIUM_COMPLEXITY_LENGTH:
            return Complexity.MEDIUM
        return Complexity.LOW

    def detect_language(self, message: str) -> str:
        """Language whose function words appear most; ties go to the first listed"""
        text = message.lower()
        best_language = None
        best_count = -1
        for language, words in self.catalog.languages:
            count = sum(1 for word in words if word in text)
            if count > best_count:
                best_language, best_count = language, count
        return best_language or DEFAULT_LANGUAGE

"""Ordered-rule provider selection

The policy is the ``rules`` list: each rule has a predicate and a resolver,
and the first rule whose predicate holds and whose resolver finds an active
provider wins. Reordering the list changes routing behaviour.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .catalog import SectorCatalog
from .provider_registry import RegistrySnapshot
from ...core.logger import CentralizedLogger
from ...models.routing import (
    Classification,
    Complexity,
    Provider,
    RequestContext,
    Strategy,
)

ROLE_REASONING = "reasoning"
ROLE_COST_EFFICIENT = "cost_efficient"
ROLE_MULTILINGUAL = "multilingual"


@dataclass(frozen=True)
class SelectionInput:
    snapshot: RegistrySnapshot
    classification: Classification
    strategy: Strategy
    context: RequestContext


@dataclass(frozen=True)
class SelectionRule:
    name: str
    predicate: Callable[[SelectionInput], bool]
    resolver: Callable[[SelectionInput], Optional[Provider]]


class ProviderSelector:
    """Pick exactly one provider for a classified request, or None"""

    def __init__(self, catalog: SectorCatalog):
        self.catalog = catalog
        self.logger = CentralizedLogger("ProviderSelector")
        self.rules: List[SelectionRule] = [
            SelectionRule("realtime", self._needs_realtime, self._live_search_provider),
            SelectionRule("sector_preference", self._wants_sector_preference, self._preferred_for_sector),
            SelectionRule("sector_override", self._has_sector_override, self._override_provider),
            SelectionRule("locale", self._has_full_locale, self._locale_provider),
            SelectionRule("strategy", lambda _: True, self._strategy_provider),
        ]

    def select(
        self,
        providers: Union[RegistrySnapshot, Sequence[Provider]],
        classification: Classification,
        strategy: Optional[Strategy],
        ctx: RequestContext
    ) -> Optional[Provider]:
        provider, _ = self.select_with_rule(providers, classification, strategy, ctx)
        return provider

    def select_with_rule(
        self,
        providers: Union[RegistrySnapshot, Sequence[Provider]],
        classification: Classification,
        strategy: Optional[Strategy],
        ctx: RequestContext
    ) -> Tuple[Optional[Provider], Optional[str]]:
        """Like ``select`` but also names the rule that decided"""
        snapshot = providers if isinstance(providers, RegistrySnapshot) else RegistrySnapshot.build(list(providers))
        if snapshot.is_empty:
            return None, None

        selection = SelectionInput(
            snapshot=snapshot,
            classification=classification,
            strategy=strategy or Strategy.BALANCED,
            context=ctx,
        )
        for rule in self.rules:
            if not rule.predicate(selection):
                continue
            provider = rule.resolver(selection)
            if provider is not None:
                self.logger.debug(
                    f"Rule '{rule.name}' selected {provider.name}",
                    extra={"provider": provider.name, "sector": classification.sector.value}
                )
                return provider, rule.name

        # The strategy rule always resolves on a non-empty snapshot
        return snapshot.cheapest(), "strategy"

    def _role_provider(self, snapshot: RegistrySnapshot, role: str) -> Optional[Provider]:
        return snapshot.find(self.catalog.role(role))

    # Rule 1: live information
    @staticmethod
    def _needs_realtime(selection: SelectionInput) -> bool:
        return selection.classification.requires_realtime

    def _live_search_provider(self, selection: SelectionInput) -> Optional[Provider]:
        return selection.snapshot.first_with_capability(self.catalog.live_search_capability)

    # Rule 2: ranked sector preference list
    @staticmethod
    def _wants_sector_preference(selection: SelectionInput) -> bool:
        return (
            selection.strategy == Strategy.SECTOR_OPTIMIZED
            or selection.context.multi_sector_enabled
        )

    def _preferred_for_sector(self, selection: SelectionInput) -> Optional[Provider]:
        profile = self.catalog.profile(selection.classification.sector)
        for name in profile.preferences:
            provider = selection.snapshot.find(name)
            if provider is not None:
                return provider
        return None

    # Rule 3: (sector, task type or complexity) overrides
    def _matching_overrides(self, selection: SelectionInput):
        c = selection.classification
        return [o for o in self.catalog.overrides if o.matches(c.sector, c.task_type, c.complexity)]

    def _has_sector_override(self, selection: SelectionInput) -> bool:
        return bool(self._matching_overrides(selection))

    def _override_provider(self, selection: SelectionInput) -> Optional[Provider]:
        for override in self._matching_overrides(selection):
            provider = self._role_provider(selection.snapshot, override.role)
            if provider is not None:
                return provider
        return None

    # Rule 4: locale
    @staticmethod
    def _has_full_locale(selection: SelectionInput) -> bool:
        return selection.context.locale.is_complete

    def _locale_provider(self, selection: SelectionInput) -> Optional[Provider]:
        locale = selection.context.locale
        policy = self.catalog.locale

        if policy.prefers_multilingual(locale.language, locale.region):
            provider = self._role_provider(selection.snapshot, ROLE_MULTILINGUAL)
            if provider is not None:
                return provider

        if policy.is_emerging_market(locale.country_code):
            return self._role_provider(selection.snapshot, ROLE_COST_EFFICIENT)
        return None

    # Rule 5: strategy fallback
    def _strategy_provider(self, selection: SelectionInput) -> Optional[Provider]:
        snapshot = selection.snapshot
        strategy = selection.strategy

        if strategy == Strategy.COST_OPTIMIZED:
            return snapshot.cheapest()

        if strategy == Strategy.PERFORMANCE:
            preferred = ROLE_REASONING
        elif selection.classification.complexity == Complexity.HIGH:
            # balanced, and sector_optimized without an active preference
            preferred = ROLE_REASONING
        else:
            preferred = ROLE_COST_EFFICIENT

        return self._role_provider(snapshot, preferred) or snapshot.cheapest()

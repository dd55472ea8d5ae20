"""Sector catalog: keyword tables, preferences and prompt templates

The catalog is plain data loaded once from YAML, so adding a sector means
adding an enum member and a catalog entry, never a new code branch.
"""

import unicodedata
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from ...core.exceptions import ConfigurationError, ClassificationError
from ...models.routing import Sector, TaskType, Complexity


DEFAULT_LOCALE_CLAUSE = "Contexte géographique: pays {country_code}, région {region}."


def fold_text(text: str) -> str:
    """Lower-case and strip accents (NFD, combining marks dropped)"""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _fold_all(words) -> Tuple[str, ...]:
    return tuple(fold_text(str(w)) for w in words)


class SectorProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    sector: Sector
    keywords: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    preferences: Tuple[str, ...] = ()
    prompt: str
    specialization: Optional[str] = None


class OverrideRule(BaseModel):
    """Route a sector (and task type or complexity) to a provider role"""
    model_config = ConfigDict(frozen=True)

    sector: Sector
    task_type: Optional[TaskType] = None
    complexity: Optional[Complexity] = None
    role: str

    def matches(self, sector: Sector, task_type: TaskType, complexity: Complexity) -> bool:
        if sector != self.sector:
            return False
        if self.task_type is not None and task_type != self.task_type:
            return False
        if self.complexity is not None and complexity != self.complexity:
            return False
        return True


class LocalePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    multilingual_languages: Tuple[str, ...] = ("fr",)
    multilingual_regions: Tuple[str, ...] = ("west",)
    emerging_markets: Tuple[str, ...] = ()

    def prefers_multilingual(self, language: Optional[str], region: Optional[str]) -> bool:
        if language and language.lower() in self.multilingual_languages:
            return True
        return bool(region) and region.strip().lower() in self.multilingual_regions

    def is_emerging_market(self, country_code: Optional[str]) -> bool:
        return bool(country_code) and country_code.strip().upper() in self.emerging_markets


class SectorCatalog(BaseModel):
    """Immutable routing tables shared by classifier, prompt generator and selector"""
    model_config = ConfigDict(frozen=True)

    default_sector: Sector = Sector.INSURANCE
    # Ordered: first sector with a keyword hit wins
    sectors: Tuple[SectorProfile, ...]
    locale_clause: str = DEFAULT_LOCALE_CLAUSE
    tasks: Tuple[Tuple[TaskType, Tuple[str, ...]], ...] = ()
    realtime_keywords: Tuple[str, ...] = ()
    # Ordered: ties resolve to the first language
    languages: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    roles: Dict[str, str] = Field(default_factory=dict)
    live_search_capability: str = "live_search"
    overrides: Tuple[OverrideRule, ...] = ()
    locale: LocalePolicy = Field(default_factory=LocalePolicy)

    def profile(self, sector: Sector) -> SectorProfile:
        for profile in self.sectors:
            if profile.sector == sector:
                return profile
        raise ClassificationError(f"No catalog entry for sector '{sector.value}'")

    def resolve_alias(self, name: Optional[str]) -> Optional[Sector]:
        """Map a free-form sector name onto a sector, or None"""
        if not name:
            return None
        folded = fold_text(name.strip())
        for profile in self.sectors:
            if folded == profile.sector.value or folded in profile.aliases:
                return profile.sector
        return None

    def role(self, role_name: str) -> Optional[str]:
        return self.roles.get(role_name)

    @classmethod
    def from_dict(cls, data: Dict) -> "SectorCatalog":
        """Build a catalog from its YAML document, folding keywords once"""
        try:
            sectors = tuple(
                SectorProfile(
                    sector=Sector(name),
                    keywords=_fold_all(entry.get("keywords", [])),
                    aliases=_fold_all(entry.get("aliases", [])),
                    preferences=tuple(entry.get("preferences", [])),
                    prompt=entry["prompt"],
                    specialization=entry.get("specialization"),
                )
                for name, entry in (data.get("sectors") or {}).items()
            )
            locale = data.get("locale") or {}
            catalog = cls(
                default_sector=Sector(data.get("default_sector", Sector.INSURANCE.value)),
                sectors=sectors,
                locale_clause=data.get("locale_clause", DEFAULT_LOCALE_CLAUSE),
                tasks=tuple(
                    (TaskType(task), _fold_all(words))
                    for task, words in (data.get("tasks") or {}).items()
                ),
                realtime_keywords=_fold_all(data.get("realtime_keywords", [])),
                languages=tuple(
                    (language, tuple(str(w).lower() for w in words))
                    for language, words in (data.get("languages") or {}).items()
                ),
                roles=dict(data.get("roles") or {}),
                live_search_capability=data.get("live_search_capability", "live_search"),
                overrides=tuple(OverrideRule(**rule) for rule in data.get("overrides", [])),
                locale=LocalePolicy(
                    multilingual_languages=tuple(
                        str(v).lower() for v in locale.get("multilingual_languages", ["fr"])
                    ),
                    multilingual_regions=tuple(
                        str(v).lower() for v in locale.get("multilingual_regions", ["west"])
                    ),
                    emerging_markets=tuple(
                        str(v).upper() for v in locale.get("emerging_markets", [])
                    ),
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid sector catalog: {str(e)}") from e

        # Classification is total only if the default sector has a profile
        catalog.profile(catalog.default_sector)
        return catalog

    @classmethod
    def from_yaml(cls, path: str) -> "SectorCatalog":
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise ConfigurationError(f"Sector catalog not found: {path}")
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)


@lru_cache()
def load_catalog(path: str) -> SectorCatalog:
    """Load and cache the catalog at *path*"""
    return SectorCatalog.from_yaml(path)

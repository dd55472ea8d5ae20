"""Routing pipeline components"""

from .catalog import SectorCatalog, SectorProfile, load_catalog, fold_text
from .provider_registry import ProviderRegistry, RegistrySnapshot
from .classifier import RequestClassifier
from .prompt_generator import PromptGenerator
from .provider_selector import ProviderSelector, SelectionRule
from .invoker import ProviderInvoker
from .fallback import FallbackCoordinator, FallbackOutcome

__all__ = [
    "SectorCatalog",
    "SectorProfile",
    "load_catalog",
    "fold_text",
    "ProviderRegistry",
    "RegistrySnapshot",
    "RequestClassifier",
    "PromptGenerator",
    "ProviderSelector",
    "SelectionRule",
    "ProviderInvoker",
    "FallbackCoordinator",
    "FallbackOutcome",
]

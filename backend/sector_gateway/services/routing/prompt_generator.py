"""Sector-specific system prompts"""

from .catalog import SectorCatalog
from ...models.routing import RequestContext, Sector


class PromptGenerator:
    """Build the system prompt for a sector

    A caller-supplied system prompt replaces the template entirely. With a
    country code and region, a locale clause is appended, followed by the
    sector's specialization clause when it has one.
    """

    def __init__(self, catalog: SectorCatalog):
        self.catalog = catalog

    def generate(self, sector: Sector, ctx: RequestContext) -> str:
        if ctx.override_system_prompt and ctx.override_system_prompt.strip():
            return ctx.override_system_prompt

        profile = self.catalog.profile(sector)
        parts = [profile.prompt]

        locale = ctx.locale
        if locale.is_complete:
            parts.append(self.catalog.locale_clause.format(
                country_code=locale.country_code,
                region=locale.region,
            ))
            if profile.specialization:
                parts.append(profile.specialization)

        return "\n\n".join(parts)

import httpx

from .ambito import AmbitoSource
from .base import QuoteSource
from .cronista import CronistaSource
from .dolarhoy import DolarHoySource
from .nomad import NomadSource
from .nubank import NubankSource
from .wise import WiseSource

SOURCE_REGISTRY: dict[str, type[QuoteSource]] = {
	'ambito': AmbitoSource,
	'dolarhoy': DolarHoySource,
	'cronista': CronistaSource,
	'wise': WiseSource,
	'nubank': NubankSource,
	'nomad': NomadSource,
}


def build_sources(
	names: list[str],
	client: httpx.AsyncClient | None = None,
	timeout: int = 10,
	allow_fallback: bool = True,
) -> list[QuoteSource]:
	"""Instantiate the enabled sources, in the order given."""
	unknown = [name for name in names if name.lower() not in SOURCE_REGISTRY]
	if unknown:
		raise ValueError(f'Unknown quote sources: {", ".join(unknown)}')

	return [
		SOURCE_REGISTRY[name.lower()](client=client, timeout=timeout, allow_fallback=allow_fallback)
		for name in names
	]


__all__ = [
	'AmbitoSource',
	'CronistaSource',
	'DolarHoySource',
	'NomadSource',
	'NubankSource',
	'QuoteSource',
	'SOURCE_REGISTRY',
	'WiseSource',
	'build_sources',
]

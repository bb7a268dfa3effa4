"""Provider/model mapping to concrete local-runtime model identifiers.

Local providers run on the orchestrator's model runtime and map to a
``family:variant`` tag. A model token a known provider does not list still
maps, to ``<prefix>:<token>``. Cloud providers and unknown names are
rejected before any backend is contacted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from orchestrator_bridge.errors import UnsupportedProvider


@dataclass(frozen=True)
class ProviderRoute:
    prefix: str | None  # None: tokens are already runtime tags
    models: dict[str, str] = field(default_factory=dict)

    def map(self, model: str) -> str:
        if model in self.models:
            return self.models[model]
        if self.prefix is None:
            return model
        return f"{self.prefix}:{model}"


LOCAL_PROVIDERS: dict[str, ProviderRoute] = {
    "mistral": ProviderRoute(
        prefix="mistral",
        models={"7b": "mistral:7b", "14b": "mistral:14b"},
    ),
    "meta": ProviderRoute(
        prefix="llama3",
        models={"llama-3-8b": "llama3:8b", "llama-3-70b": "llama3:70b"},
    ),
    "microsoft": ProviderRoute(
        prefix="phi3",
        models={"phi-3-mini": "phi3:mini", "phi-3-medium": "phi3:medium"},
    ),
    "ollama": ProviderRoute(
        prefix=None,
        models={"mistral-7b": "mistral:7b"},
    ),
}

CLOUD_PROVIDERS = frozenset({"openai", "anthropic", "google", "xai"})


def is_supported_provider(provider: str) -> bool:
    return provider.strip().lower() in LOCAL_PROVIDERS


def map_model_id(provider: str, model: str) -> str:
    """Map e.g. ``("Meta", "llama-3-8b")`` to ``"llama3:8b"``.

    Raises UnsupportedProvider naming the provider for cloud or unknown
    providers.
    """
    p = provider.strip().lower()
    m = model.strip().lower()

    route = LOCAL_PROVIDERS.get(p)
    if route is not None:
        return route.map(m)

    if p in CLOUD_PROVIDERS:
        raise UnsupportedProvider(
            provider,
            f'Provider "{provider}" API integration is not yet implemented. '
            "Only local models (Mistral, Meta, Microsoft, Ollama) are currently "
            "supported.",
        )
    raise UnsupportedProvider(
        provider,
        f'Unknown provider: "{provider}". Please select a valid provider '
        "(Mistral, Meta, Microsoft, Ollama).",
    )

"""Model alias resolution.

Foundry Local wants full model identifiers such as ``Phi-4-cuda-gpu:1``
while users pass short aliases such as ``phi-4``.
"""

from __future__ import annotations

from collections.abc import Sequence

from onboardpack.providers.base import CachedModel

MODEL_ID_SEPARATOR = ":"


def resolve_model_id(name: str, cached_models: Sequence[CachedModel]) -> str:
    """Map a requested model name to a full model identifier.

    Matching order:
    1. Names already containing ``:`` are full identifiers, returned as-is.
    2. Exact case-insensitive alias match.
    3. First model whose identifier starts with the name (case-insensitive).
    4. Otherwise the name unchanged.

    The exact-alias pass must run first so that ``phi-4-mini`` resolves to
    its own model and not to ``phi-4-mini-reasoning``.

    Args:
        name: Requested alias or identifier
        cached_models: Known cached models, in listing order

    Returns:
        Resolved model identifier
    """
    if MODEL_ID_SEPARATOR in name:
        return name

    lowered = name.lower()

    for model in cached_models:
        if model.alias.lower() == lowered:
            return model.model_id

    for model in cached_models:
        if model.model_id.lower().startswith(lowered):
            return model.model_id

    return name


def synthesize_cached_models(model_ids: Sequence[str]) -> list[CachedModel]:
    """Build stand-in cache records from served model identifiers.

    Used when the cache listing command produced nothing; the alias is the
    identifier's first dash-separated segment, lower-cased.
    """
    return [
        CachedModel(alias=model_id.split("-")[0].lower(), model_id=model_id)
        for model_id in model_ids
    ]

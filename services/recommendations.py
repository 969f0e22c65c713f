"""Score optional and related applications for a persona."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Tuple

from persona_setup.catalog import CatalogEntry
from persona_setup.personas import Persona
from services.history import InstallationHistory

DEPENDENCY_WEIGHT = 3
CATEGORY_WEIGHT = 2
PEER_PERSONA_WEIGHT = 1
PAST_SUCCESS_WEIGHT = 2
PAST_FAILURE_PENALTY = -2
CONFLICT_PENALTY = -5


@dataclass(frozen=True)
class Recommendation:
    name: str
    score: int
    reasons: Tuple[str, ...]


def _candidates(persona: Persona, catalog: Mapping[str, CatalogEntry]) -> List[str]:
    base = set(persona.base_apps)
    base_categories = {catalog[name].category for name in persona.base_apps if name in catalog}
    names = [name for name in persona.optional_apps if name not in base]
    for name in sorted(catalog):
        if name in base or name in names:
            continue
        if catalog[name].category in base_categories:
            names.append(name)
    return names


def recommend(
    persona: Persona,
    catalog: Mapping[str, CatalogEntry],
    *,
    history: InstallationHistory | None = None,
    personas: Iterable[Persona] = (),
    limit: int = 5,
) -> List[Recommendation]:
    base_entries = [catalog[name] for name in persona.base_apps if name in catalog]
    peers = [other for other in personas if other.name != persona.name]
    recommendations: List[Recommendation] = []
    for name in _candidates(persona, catalog):
        entry = catalog.get(name)
        if entry is None:
            continue
        score = 0
        reasons: List[str] = []
        dependents = [base.name for base in base_entries if name in base.dependencies]
        if dependents:
            score += DEPENDENCY_WEIGHT
            reasons.append(f"required by {', '.join(dependents)}")
        same_category = [base.name for base in base_entries if base.category == entry.category]
        if same_category:
            score += CATEGORY_WEIGHT * len(same_category)
            reasons.append(f"same category as {len(same_category)} base app(s)")
        peer_count = sum(
            1 for other in peers if name in other.all_apps() and set(other.all_apps()) & set(persona.base_apps)
        )
        if peer_count:
            score += PEER_PERSONA_WEIGHT * peer_count
            reasons.append(f"used by {peer_count} similar persona(s)")
        if history is not None:
            last = history.last_status(name)
            if last is True:
                score += PAST_SUCCESS_WEIGHT
                reasons.append("installed successfully before")
            elif last is False:
                score += PAST_FAILURE_PENALTY
                reasons.append("last install failed")
        clashes = [base.name for base in base_entries if name in base.conflicts or base.name in entry.conflicts]
        if clashes:
            score += CONFLICT_PENALTY
            reasons.append(f"conflicts with {', '.join(clashes)}")
        if score > 0:
            recommendations.append(Recommendation(name, score, tuple(reasons)))
    recommendations.sort(key=lambda item: (-item.score, item.name.lower()))
    return recommendations[:limit]

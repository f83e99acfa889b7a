"""Skill adjacency graph used by the skill-adjacency strategy.

Each skill maps to its next-level neighbors, closest first. The mapping is
read-only; pass a different one to ``SkillAdjacencyStrategy`` to change it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

SkillGraph = Mapping[str, Sequence[str]]


def freeze(graph: Mapping[str, Sequence[str]]) -> SkillGraph:
    """Return an immutable copy of ``graph``."""
    return MappingProxyType({skill: tuple(neighbors) for skill, neighbors in graph.items()})


SKILL_GRAPH: SkillGraph = freeze({
    # Digital
    "basics": ("intermediate", "algorithms", "data_structures"),
    "algorithms": ("advanced_algorithms", "optimization", "distributed_systems"),
    "data_structures": ("advanced_data_structures", "database_design"),
    "web_development": ("backend_development", "frontend_frameworks", "full_stack"),
    "backend": ("microservices", "distributed_systems", "scalability"),
    "frontend": ("ui_design", "performance_optimization", "accessibility"),
    # Economic
    "trading_basics": ("technical_analysis", "risk_management", "portfolio_theory"),
    "risk_management": ("derivatives", "hedging_strategies", "quantitative_finance"),
    "market_mechanics": ("market_microstructure", "algorithmic_trading", "hft"),
    # Cognitive
    "ml_basics": ("supervised_learning", "unsupervised_learning", "deep_learning"),
    "deep_learning": ("computer_vision", "nlp", "reinforcement_learning"),
    "neural_networks": ("advanced_architectures", "optimization_techniques"),
    # Aesthetic
    "design_basics": ("ui_design", "ux_design", "design_systems"),
    "ui_design": ("advanced_layouts", "animation", "accessibility"),
    # Biological
    "biology_basics": ("molecular_biology", "genetics", "bioinformatics"),
    "genetics": ("genomics", "gene_editing", "synthetic_biology"),
})

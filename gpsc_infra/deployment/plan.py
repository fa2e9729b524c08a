"""Deployment ordering of infrastructure modules.

Builds a dependency graph from the module catalogue and derives a stable
execution order: network first, then data and monitoring, compute, the
gateway and finally role assignments.
"""

from typing import Iterable, List, Optional

import networkx as nx
import structlog

from ..exceptions import GpscInfraError
from .modules import MODULES, STACK_MODULES

logger = structlog.get_logger(__name__)


def build_dependency_graph(modules: Iterable[str] = STACK_MODULES) -> nx.DiGraph:
    """Return a DiGraph with an edge ``dependency -> module`` for each module.

    Dependencies outside ``modules`` are ignored so a partial plan can be
    ordered without pulling in unrelated modules.
    """
    selected = list(modules)
    graph = nx.DiGraph()
    for name in selected:
        spec = MODULES[name]
        graph.add_node(name, tier=0)
        for dependency in spec.depends_on:
            if dependency in selected:
                graph.add_edge(dependency, name)

    if not nx.is_directed_acyclic_graph(graph):
        cycle = nx.find_cycle(graph)
        raise GpscInfraError(
            f"Module dependencies form a cycle: {cycle}", error_code="DEPENDENCY_CYCLE"
        )

    for name in nx.topological_sort(graph):
        predecessors = list(graph.predecessors(name))
        if predecessors:
            graph.nodes[name]["tier"] = 1 + max(
                graph.nodes[p]["tier"] for p in predecessors
            )
    return graph


def deployment_order(modules: Optional[Iterable[str]] = None) -> List[str]:
    """Modules in dependency order; ties keep catalogue order."""
    selected = list(modules) if modules is not None else list(STACK_MODULES)
    unknown = [name for name in selected if name not in MODULES]
    if unknown:
        raise GpscInfraError(
            f"Unknown modules: {', '.join(unknown)}", error_code="UNKNOWN_MODULE"
        )
    position = {name: index for index, name in enumerate(STACK_MODULES)}
    graph = build_dependency_graph(selected)
    order = list(
        nx.lexicographical_topological_sort(
            graph, key=lambda name: position.get(name, len(position))
        )
    )
    logger.debug(f"Deployment order: {' -> '.join(order)}")
    return order


def deployment_tiers(modules: Optional[Iterable[str]] = None) -> List[List[str]]:
    """Group modules into tiers whose members only depend on earlier tiers."""
    order = deployment_order(modules)
    graph = build_dependency_graph(order)
    tiers: List[List[str]] = []
    for name in order:
        tier = graph.nodes[name]["tier"]
        while len(tiers) <= tier:
            tiers.append([])
        tiers[tier].append(name)
    return tiers


# src/dagflow/core/graph/__init__.py
from .builder import GraphNode, StepGraph, StepGraphBuilder, case_position_map, topological_order
from .dag import departure_times, is_dag, to_adjacency_list

__all__ = [
    "GraphNode",
    "StepGraph",
    "StepGraphBuilder",
    "case_position_map",
    "departure_times",
    "is_dag",
    "to_adjacency_list",
    "topological_order",
]

"""Relationship graph construction."""

from .builder import GraphEdge, GraphNode, TermGraph, build_graph

__all__ = ["GraphEdge", "GraphNode", "TermGraph", "build_graph"]

#!/usr/bin/env python3
"""
Workflow graph model.

A Workflow owns its nodes (in insertion order) and the directed edges between
them. It is the structure the editor mutates and the executor reads.
"""
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from nodeflow.nodes.base import FieldType, Node
from nodeflow.nodes.registry import get_registry

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Raised for invalid graph operations"""


@dataclass
class Edge:
    """Represents a data-flow connection: target consumes source's output"""
    id: str
    source: str
    target: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target}


@dataclass
class InputMapping:
    """Projects a field of a predecessor's output into a node's input"""
    source_node: str
    source_path: str
    target_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceNode": self.source_node,
            "sourcePath": self.source_path,
            "targetPath": self.target_path or self.source_path.split(".")[-1]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputMapping":
        return cls(
            source_node=data["sourceNode"],
            source_path=data["sourcePath"],
            target_path=data.get("targetPath")
        )


class Workflow:
    """A directed graph of nodes connected by data-flow edges"""

    def __init__(self):
        self._nodes: Dict[str, Node] = {}
        self._edges: List[Edge] = []

    @property
    def nodes(self) -> List[Node]:
        """Nodes in insertion order"""
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        """Edges in declaration order"""
        return list(self._edges)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise WorkflowError(f"Unknown node: {node_id}") from None

    def add_node(self, kind: str, node_id: Optional[str] = None,
                 label: Optional[str] = None,
                 config: Optional[Dict[str, Any]] = None,
                 position: Optional[Dict[str, float]] = None) -> Node:
        """
        Create a node of the given kind and add it to the graph.

        Args:
            kind: Node kind (trigger, function, api, utility, llm)
            node_id: Unique id (default: ``<kind>-<ms timestamp>``)
            label: Display label (default: the kind's default label)
            config: Node config (default: the kind's default config)
            position: Editor position

        Returns:
            The created node
        """
        registry = get_registry()
        node_class = registry.get_node_class(kind)
        if node_class is None:
            raise WorkflowError(f"Unknown node kind: {kind}")

        if node_id is None:
            node_id = f"{kind}-{int(time.time() * 1000)}"
            while node_id in self._nodes:
                node_id = f"{kind}-{uuid.uuid4().hex[:8]}"
        if node_id in self._nodes:
            raise WorkflowError(f"Duplicate node id: {node_id}")

        if config is None:
            config = dict(node_class.default_config)

        node = registry.create_node(kind, node_id, label=label, position=position, **config)
        self._nodes[node_id] = node
        logger.debug("Added %s node %s", kind, node_id)
        return node

    def delete_node(self, node_id: str):
        """Delete a node and every edge that references it"""
        self.get_node(node_id)
        del self._nodes[node_id]
        self._edges = [
            edge for edge in self._edges
            if edge.source != node_id and edge.target != node_id
        ]

    def update_node(self, node_id: str, label: Optional[str] = None,
                    config: Optional[Dict[str, Any]] = None) -> Node:
        """Update a node's label and merge keys into its config"""
        node = self.get_node(node_id)
        if label is not None:
            node.label = label
        if config:
            node.config.update(config)
        return node

    def add_edge(self, source: str, target: str, edge_id: Optional[str] = None) -> Edge:
        """
        Connect source to target.

        An existing edge between the same pair is returned instead of adding
        a duplicate.
        """
        self.get_node(source)
        self.get_node(target)

        for edge in self._edges:
            if edge.source == source and edge.target == target:
                return edge

        edge = Edge(id=edge_id or f"e-{source}-{target}", source=source, target=target)
        if any(existing.id == edge.id for existing in self._edges):
            raise WorkflowError(f"Duplicate edge id: {edge.id}")
        self._edges.append(edge)
        return edge

    def delete_edge(self, edge_id: str):
        remaining = [edge for edge in self._edges if edge.id != edge_id]
        if len(remaining) == len(self._edges):
            raise WorkflowError(f"Unknown edge: {edge_id}")
        self._edges = remaining

    def incoming_edges(self, node_id: str) -> List[Edge]:
        return [edge for edge in self._edges if edge.target == node_id]

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return [edge for edge in self._edges if edge.source == node_id]

    def trigger_nodes(self) -> List[Node]:
        return [node for node in self._nodes.values() if node.kind == "trigger"]

    def toggle_input_mapping(self, node_id: str, source_node: str,
                             source_path: str) -> List[Dict[str, Any]]:
        """
        Add a mapping for ``source_node``/``source_path``, or remove it if present.

        Returns:
            The node's updated mapping list
        """
        node = self.get_node(node_id)
        mappings = list(node.config.get("inputMappings") or [])

        remaining = [
            mapping for mapping in mappings
            if not (mapping.get("sourceNode") == source_node
                    and mapping.get("sourcePath") == source_path)
        ]
        if len(remaining) == len(mappings):
            remaining.append(InputMapping(source_node, source_path).to_dict())

        node.config["inputMappings"] = remaining
        return remaining

    def validate(self) -> List[str]:
        """Check the graph for structural and configuration problems"""
        errors = []

        for edge in self._edges:
            for end in (edge.source, edge.target):
                if end not in self._nodes:
                    errors.append(f"Edge {edge.id} references unknown node: {end}")
            if edge.source == edge.target:
                errors.append(f"Edge {edge.id} connects {edge.source} to itself")

        for node in self._nodes.values():
            for error in node.validate():
                errors.append(f"Node {node.node_id} ({node.kind}): {error}")

            predecessors = {edge.source for edge in self.incoming_edges(node.node_id)}
            for mapping in node.input_mappings():
                source = mapping.get("sourceNode") if isinstance(mapping, dict) else None
                if source and source not in predecessors:
                    errors.append(
                        f"Node {node.node_id}: mapping source {source} is not connected"
                    )

            for name, field_def in node.fields.items():
                value = node.config.get(name)
                if field_def.field_type == FieldType.JSON_TEMPLATE and isinstance(value, str) \
                        and value and "{{" not in value:
                    try:
                        json.loads(value)
                    except ValueError as e:
                        errors.append(f"Node {node.node_id}: {name} is not valid JSON: {e}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Plain ``{nodes, edges}`` representation"""
        return {
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges]
        }

#!/usr/bin/env python3
"""
Data management for node-based workflows.

Handles result storage for a run and resolution of a node's input payload from
its predecessors' result envelopes.
"""
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

if TYPE_CHECKING:
    from nodeflow.workflows.graph import Workflow

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that did not resolve"""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def get_path(value: Any, path: str) -> Any:
    """
    Walk a dotted path into nested dicts/lists.

    Returns MISSING when any segment is absent.
    """
    current = value
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)):
            # Only canonical non-negative indices: "-1" or "01" do not address an item
            if not key.isdecimal() or str(int(key)) != key:
                return MISSING
            index = int(key)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def envelope_data(envelope: Any) -> Any:
    """The ``data`` field of a result envelope, or the envelope itself"""
    if isinstance(envelope, Mapping) and "data" in envelope:
        return envelope["data"]
    return envelope


def list_data_paths(value: Any, prefix: str = "") -> List[str]:
    """
    List the dotted paths available inside a result payload.

    Nested objects contribute both their own path and their children's paths,
    which is what the editor offers when building input mappings.
    """
    paths: List[str] = []
    if not isinstance(value, Mapping):
        return paths
    for key, item in value.items():
        full_path = f"{prefix}.{key}" if prefix else str(key)
        paths.append(full_path)
        if isinstance(item, Mapping):
            paths.extend(list_data_paths(item, full_path))
    return paths


def _mapping_value(envelope: Any, source_path: str) -> Any:
    value = get_path(envelope_data(envelope), source_path)
    if value is MISSING and isinstance(envelope, Mapping) and "data" in envelope:
        # Paths written relative to the envelope, e.g. "data.value"
        value = get_path(envelope, source_path)
    return value


def resolve_node_inputs(workflow: "Workflow", node_id: str,
                        results: Mapping[str, Any],
                        mappings: Optional[List[Dict[str, Any]]] = None) -> Any:
    """
    Compute the input payload for a node from its predecessors' results.

    Args:
        workflow: Workflow whose edges define the predecessors
        node_id: Node to resolve inputs for
        results: Result envelopes recorded so far, keyed by node id
        mappings: Optional explicit input mappings
            (``sourceNode``, ``sourcePath``, ``targetPath``)

    Returns:
        Resolved input payload
    """
    incoming = workflow.incoming_edges(node_id)
    if not incoming:
        return {}

    if not mappings:
        if len(incoming) == 1:
            source_id = incoming[0].source
            if source_id not in results:
                return {}
            return envelope_data(results[source_id])

        combined: Dict[str, Any] = {}
        for edge in incoming:
            if edge.source in results:
                combined[edge.source] = envelope_data(results[edge.source])
        return combined

    mapped: Dict[str, Any] = {}
    for mapping in mappings:
        source_id = mapping.get("sourceNode")
        source_path = mapping.get("sourcePath") or ""
        if source_id not in results or not source_path:
            logger.debug("Skipping mapping %s: no result for source", mapping)
            continue

        value = _mapping_value(results[source_id], source_path)
        if value is MISSING:
            logger.debug("Skipping mapping %s: path did not resolve", mapping)
            continue

        target_path = mapping.get("targetPath") or source_path.split(".")[-1]
        mapped[target_path] = value

    return mapped


class DataManager:
    """Manages result envelopes for a single execution run"""

    def __init__(self):
        self._node_results: Dict[str, Any] = {}
        self.results_view: Mapping[str, Any] = MappingProxyType(self._node_results)

    def set_node_result(self, node_id: str, envelope: Any):
        """Store the result envelope for a node"""
        self._node_results[node_id] = envelope

    def get_node_result(self, node_id: str) -> Optional[Any]:
        """Get a node's result envelope"""
        return self._node_results.get(node_id)

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the results recorded so far"""
        return dict(self._node_results)

#!/usr/bin/env python3
"""
Node registry for managing available node kinds.

Node classes register themselves by kind with ``@register_node``; the package's
``*_nodes.py`` modules are discovered on first use of the registry.
"""
import importlib
import inspect
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from .base import Node

logger = logging.getLogger(__name__)


class NodeRegistry:
    """Registry for all available node kinds"""

    def __init__(self):
        self._nodes: Dict[str, Type[Node]] = {}
        self._node_metadata: Dict[str, Dict] = {}

    def register(self, node_class: Type[Node], metadata: Optional[Dict] = None):
        """
        Register a node class under its kind.

        Args:
            node_class: Node class to register
            metadata: Optional metadata about the node
        """
        if not node_class.kind:
            raise ValueError(f"{node_class.__name__} does not declare a kind")
        self._nodes[node_class.kind] = node_class
        self._node_metadata[node_class.kind] = metadata or {}

    def get_node_class(self, kind: str) -> Optional[Type[Node]]:
        """Get node class by kind"""
        return self._nodes.get(kind)

    def create_node(self, kind: str, node_id: str, label: Optional[str] = None,
                    position: Optional[Dict[str, float]] = None,
                    **config: Any) -> Node:
        """
        Create a node instance.

        Args:
            kind: Kind of the node (trigger, function, api, utility, llm)
            node_id: Unique identifier for the node
            label: Display label
            position: Editor position
            **config: Node configuration

        Returns:
            Node instance

        Raises:
            KeyError: If the kind is not registered
        """
        node_class = self.get_node_class(kind)
        if node_class is None:
            raise KeyError(f"Unknown node kind: {kind}")
        return node_class(node_id=node_id, label=label, position=position, **config)

    def list_node_types(self) -> List[str]:
        """List all registered node kinds"""
        return list(self._nodes.keys())

    def get_node_metadata(self, kind: str) -> Dict:
        """Get metadata for a node kind"""
        return self._node_metadata.get(kind, {})

    def discover_nodes(self, package_path: Path):
        """
        Import every ``*_nodes.py`` module in a package so its nodes register.

        Args:
            package_path: Path to package containing node modules
        """
        if not package_path.exists():
            return

        for module_file in sorted(package_path.glob("*_nodes.py")):
            module_name = f"{__package__}.{module_file.stem}"
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                logger.error("Error discovering nodes from %s: %s", module_file, e)
                continue

            # Pick up Node subclasses defined without the decorator
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, Node) and obj is not Node and obj.kind \
                        and obj.kind not in self._nodes:
                    self.register(obj)


# Global registry instance
_registry: Optional[NodeRegistry] = None
_discovered = False


def _global_registry() -> NodeRegistry:
    global _registry
    if _registry is None:
        _registry = NodeRegistry()
    return _registry


def get_registry() -> NodeRegistry:
    """Get the global node registry (lazy initialization)"""
    global _discovered
    registry = _global_registry()
    if not _discovered:
        _discovered = True
        registry.discover_nodes(Path(__file__).parent)
    return registry


def register_node(metadata: Optional[Dict] = None):
    """
    Decorator to register a node class.

    Usage:
        @register_node(metadata={"category": "api"})
        class MyNode(Node):
            kind = "my-kind"
            ...
    """
    def decorator(node_class: Type[Node]):
        _global_registry().register(node_class, metadata)
        return node_class
    return decorator

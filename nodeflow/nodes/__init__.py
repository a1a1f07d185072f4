"""
Node kinds for nodeflow workflows.

Each kind (trigger, function, api, utility, llm) is a Node subclass registered
in the node registry under its kind.
"""
from .base import Node, ConfigField, FieldType
from .registry import NodeRegistry, get_registry, register_node

__all__ = [
    'Node',
    'ConfigField',
    'FieldType',
    'NodeRegistry',
    'get_registry',
    'register_node',
]

"""
Execution engine for node-based workflows.

Handles traversal, input resolution, template rendering and sandboxed code.
"""
from .data import DataManager, resolve_node_inputs, get_path, list_data_paths
from .errors import CollaboratorError, ExecutionCancelled, SandboxError
from .executor import WorkflowExecutor, ExecutionResult
from .template import render_template

__all__ = [
    'WorkflowExecutor',
    'ExecutionResult',
    'DataManager',
    'resolve_node_inputs',
    'get_path',
    'list_data_paths',
    'render_template',
    'CollaboratorError',
    'ExecutionCancelled',
    'SandboxError',
]

"""
Workflow graph model, serialization and command-line interface.
"""
from .graph import Edge, InputMapping, Workflow, WorkflowError
from .serialization import WorkflowSerializer

__all__ = [
    'Edge',
    'InputMapping',
    'Workflow',
    'WorkflowError',
    'WorkflowSerializer',
]

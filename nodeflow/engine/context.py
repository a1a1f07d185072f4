#!/usr/bin/env python3
"""
Per-node execution context handed to nodes by the executor.
"""
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

import requests

from nodeflow.engine.data import resolve_node_inputs
from nodeflow.engine.errors import ExecutionCancelled

if TYPE_CHECKING:
    from nodeflow.utils.config import CollaboratorConfig
    from nodeflow.workflows.graph import Workflow


@dataclass
class NodeContext:
    """Everything a node may use while executing"""
    workflow: "Workflow"
    node_id: str
    results: Mapping[str, Any]
    collaborators: "CollaboratorConfig"
    session: requests.Session
    raw_input: Any = None
    timeout: Optional[float] = None
    code_time_budget: Optional[float] = None
    cancel_event: Optional[threading.Event] = None

    def resolve_inputs(self, mappings: Optional[List[Dict[str, Any]]] = None) -> Any:
        """Resolve this node's input payload from predecessor results"""
        return resolve_node_inputs(self.workflow, self.node_id, self.results, mappings)

    def check_cancelled(self):
        """Raise ExecutionCancelled if the run has been cancelled"""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ExecutionCancelled(f"Execution cancelled before node {self.node_id}")

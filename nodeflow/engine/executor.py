#!/usr/bin/env python3
"""
Workflow execution engine.

Runs one depth-first chain per trigger node (or from the first node when the
workflow has no triggers), feeding each node's result envelope to its
successors in edge order.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

import requests

from nodeflow.engine.context import NodeContext
from nodeflow.engine.data import DataManager
from nodeflow.engine.errors import ExecutionCancelled
from nodeflow.utils.config import CollaboratorConfig, ExecutionConfig

if TYPE_CHECKING:
    from nodeflow.nodes.base import Node
    from nodeflow.workflows.graph import Workflow

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of workflow execution"""
    success: bool
    results: Dict[str, Any]
    error: Optional[str]
    execution_time: float
    total_nodes: int
    completed_nodes: int
    failed_nodes: int
    log: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "results": self.results,
            "error": self.error,
            "execution_time": self.execution_time,
            "total_nodes": self.total_nodes,
            "completed_nodes": self.completed_nodes,
            "failed_nodes": self.failed_nodes
        }


class WorkflowExecutor:
    """Executes node-based workflows"""

    def __init__(self, collaborators: Optional[CollaboratorConfig] = None,
                 settings: Optional[ExecutionConfig] = None,
                 session: Optional[requests.Session] = None,
                 node_timeout: Optional[float] = None,
                 keep_partial_results: Optional[bool] = None,
                 dedupe_across_chains: Optional[bool] = None):
        """
        Initialize workflow executor.

        Args:
            collaborators: Trigger/LLM endpoints (default: CollaboratorConfig())
            settings: Execution defaults (default: ExecutionConfig())
            session: HTTP session used for every collaborator call
            node_timeout: Per-request timeout in seconds, overrides settings
            keep_partial_results: Keep completed results when the run aborts
            dedupe_across_chains: Execute each node at most once per run
                instead of once per chain
        """
        self.collaborators = collaborators or CollaboratorConfig()
        self.settings = settings or ExecutionConfig()
        self.session = session or requests.Session()
        self.node_timeout = node_timeout if node_timeout is not None else self.settings.node_timeout
        self.keep_partial_results = (
            keep_partial_results if keep_partial_results is not None
            else self.settings.keep_partial_results
        )
        self.dedupe_across_chains = (
            dedupe_across_chains if dedupe_across_chains is not None
            else self.settings.dedupe_across_chains
        )
        self.is_running = False
        self.data_manager = DataManager()
        self._execution_log: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def entry_nodes(self, workflow: "Workflow") -> List["Node"]:
        """Trigger nodes in list order, or the first node if there are none"""
        triggers = workflow.trigger_nodes()
        if triggers:
            return triggers
        nodes = workflow.nodes
        return nodes[:1]

    def _make_context(self, workflow: "Workflow", node: "Node", raw_input: Any,
                      cancel_event: Optional[threading.Event]) -> NodeContext:
        return NodeContext(
            workflow=workflow,
            node_id=node.node_id,
            results=self.data_manager.results_view,
            collaborators=self.collaborators,
            session=self.session,
            raw_input=raw_input,
            timeout=self.node_timeout,
            code_time_budget=self.settings.code_time_budget,
            cancel_event=cancel_event,
        )

    def execute_node(self, workflow: "Workflow", node: "Node", raw_input: Any,
                     visited: Set[str],
                     cancel_event: Optional[threading.Event] = None) -> Any:
        """
        Execute a node and, depth-first, everything downstream of it.

        Returns:
            The node's result envelope (the stored one if already visited)
        """
        if node.node_id in visited:
            logger.debug("Node %s already visited, returning stored result", node.node_id)
            return self.data_manager.get_node_result(node.node_id)

        if cancel_event is not None and cancel_event.is_set():
            raise ExecutionCancelled(f"Execution cancelled before node {node.node_id}")

        visited.add(node.node_id)
        logger.info("Executing %s node %s (%s)", node.kind, node.node_id, node.label)

        context = self._make_context(workflow, node, raw_input, cancel_event)
        envelope = node.run(context)
        self.data_manager.set_node_result(node.node_id, envelope)

        failed = isinstance(envelope, dict) and envelope.get("success") is False
        self._execution_log.append({
            "node_id": node.node_id,
            "kind": node.kind,
            "success": not failed,
            "error": envelope.get("error") if failed else None,
            "timestamp": time.time()
        })

        outgoing = workflow.outgoing_edges(node.node_id)
        logger.debug("Found %d outgoing connections from %s", len(outgoing), node.node_id)
        for edge in outgoing:
            # get_node raises for dangling edges, which aborts the run
            next_node = workflow.get_node(edge.target)
            self.execute_node(workflow, next_node, envelope, visited, cancel_event)

        return envelope

    def execute_chain(self, workflow: "Workflow", start_node: "Node",
                      visited: Optional[Set[str]] = None,
                      cancel_event: Optional[threading.Event] = None):
        """Execute one chain from its entry node"""
        if visited is None:
            visited = set()
        self.execute_node(workflow, start_node, None, visited, cancel_event)

    def execute_workflow(self, workflow: "Workflow",
                         cancel_event: Optional[threading.Event] = None) -> ExecutionResult:
        """
        Execute a complete workflow.

        Args:
            workflow: Workflow to execute
            cancel_event: Set it from another thread to stop the run before
                its next node

        Returns:
            ExecutionResult with the per-node results
        """
        with self._lock:
            if self.is_running:
                raise RuntimeError("Executor is already running a workflow")
            self.is_running = True

        start_time = time.time()
        self.data_manager = DataManager()
        self._execution_log = []
        error = None

        try:
            entries = self.entry_nodes(workflow)
            if not entries:
                logger.error("No nodes found in workflow")

            run_visited: Set[str] = set()
            for entry in entries:
                logger.info("Starting chain at %s node %s", entry.kind, entry.node_id)
                # Each chain gets a fresh visited set unless deduping per run
                visited = run_visited if self.dedupe_across_chains else set()
                self.execute_chain(workflow, entry, visited, cancel_event)

            results = self.data_manager.snapshot()
            logger.info("Workflow execution completed: %d node results", len(results))
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.exception("Workflow execution failed: %s", error)
            if self.keep_partial_results:
                results = self.data_manager.snapshot()
            else:
                results = {"error": error}
        finally:
            self.is_running = False

        failed = sum(1 for entry in self._execution_log if not entry["success"])
        return ExecutionResult(
            success=error is None and failed == 0,
            results=results,
            error=error,
            execution_time=time.time() - start_time,
            total_nodes=len(workflow),
            completed_nodes=len(self._execution_log) - failed,
            failed_nodes=failed,
            log=list(self._execution_log)
        )

    def run(self, workflow: "Workflow",
            cancel_event: Optional[threading.Event] = None) -> Dict[str, Any]:
        """Execute a workflow and return the results map keyed by node id"""
        return self.execute_workflow(workflow, cancel_event).results

    def get_execution_log(self) -> List[Dict[str, Any]]:
        """Get execution log"""
        return self._execution_log

    def close(self):
        """Release the HTTP session"""
        self.session.close()

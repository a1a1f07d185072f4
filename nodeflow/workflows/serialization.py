#!/usr/bin/env python3
"""
Workflow serialization format.

Saves and loads workflows as JSON. Files carry a version and metadata next to
the editor's ``{nodes, edges}`` shape; bare editor exports load as well.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .graph import Workflow, WorkflowError

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


class WorkflowSerializer:
    """Handles workflow serialization and deserialization"""

    def serialize_workflow(self, workflow: Workflow,
                           metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Serialize a workflow to dictionary format.

        Args:
            workflow: Workflow to serialize
            metadata: Optional workflow metadata

        Returns:
            Dictionary representation of workflow
        """
        data = workflow.to_dict()
        return {
            "version": FORMAT_VERSION,
            "metadata": metadata or {},
            "nodes": data["nodes"],
            "edges": data["edges"]
        }

    def deserialize_workflow(self, workflow_data: Dict[str, Any]) -> Workflow:
        """
        Deserialize a workflow from dictionary format.

        Args:
            workflow_data: Dictionary representation of workflow

        Returns:
            Workflow instance

        Raises:
            WorkflowError: If a node or edge cannot be rebuilt
        """
        workflow = Workflow()

        for node_data in workflow_data.get("nodes", []):
            try:
                node_id = node_data["id"]
                kind = node_data["type"]
            except (KeyError, TypeError):
                raise WorkflowError(f"Malformed node entry: {node_data!r}") from None

            data = node_data.get("data") or {}
            workflow.add_node(
                kind,
                node_id=node_id,
                label=data.get("label"),
                config=dict(data.get("config") or {}),
                position=node_data.get("position")
            )

        for edge_data in workflow_data.get("edges", []):
            try:
                workflow.add_edge(
                    edge_data["source"],
                    edge_data["target"],
                    edge_id=edge_data.get("id")
                )
            except (KeyError, TypeError):
                raise WorkflowError(f"Malformed edge entry: {edge_data!r}") from None

        return workflow

    def dumps(self, workflow: Workflow, metadata: Optional[Dict[str, Any]] = None) -> str:
        return json.dumps(self.serialize_workflow(workflow, metadata), indent=2, default=str)

    def loads(self, text: str) -> Workflow:
        return self.deserialize_workflow(json.loads(text))

    def save_workflow(self, workflow_path: Path, workflow: Workflow,
                      metadata: Optional[Dict[str, Any]] = None):
        """
        Save workflow to JSON file.

        Args:
            workflow_path: Path to save workflow file
            workflow: Workflow to save
            metadata: Optional workflow metadata
        """
        workflow_path = Path(workflow_path)
        workflow_path.parent.mkdir(parents=True, exist_ok=True)
        with open(workflow_path, 'w') as f:
            f.write(self.dumps(workflow, metadata))
        logger.info("Saved workflow to %s", workflow_path)

    def load_workflow(self, workflow_path: Path) -> Tuple[Workflow, Dict[str, Any]]:
        """
        Load workflow from JSON file.

        Args:
            workflow_path: Path to workflow file

        Returns:
            Tuple of (workflow, metadata)
        """
        with open(workflow_path, 'r') as f:
            workflow_data = json.load(f)

        version = workflow_data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            logger.warning("Workflow %s has version %s, expected %s",
                           workflow_path, version, FORMAT_VERSION)

        workflow = self.deserialize_workflow(workflow_data)
        return workflow, workflow_data.get("metadata", {})

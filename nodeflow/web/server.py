#!/usr/bin/env python3
"""
Web server for the workflow editor.

Provides the REST API the visual editor uses to list node kinds, validate,
execute, save and load workflows.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from nodeflow.engine.data import list_data_paths
from nodeflow.engine.executor import WorkflowExecutor
from nodeflow.nodes.registry import get_registry
from nodeflow.utils.common import setup_logging
from nodeflow.utils.config import get_config_manager
from nodeflow.workflows.graph import Workflow, WorkflowError
from nodeflow.workflows.serialization import WorkflowSerializer

logger = logging.getLogger(__name__)

app = FastAPI(title="nodeflow workflow editor")


class WorkflowRequest(BaseModel):
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]] = []


class ExecuteRequest(WorkflowRequest):
    node_timeout: Optional[float] = None
    keep_partial_results: Optional[bool] = None
    dedupe_across_chains: Optional[bool] = None


class PathsRequest(BaseModel):
    result: Any = None


def create_executor(request: ExecuteRequest) -> WorkflowExecutor:
    """Build an executor from stored config and the request's options"""
    config = get_config_manager().load()
    return WorkflowExecutor(
        collaborators=config.collaborators,
        settings=config.execution,
        node_timeout=request.node_timeout,
        keep_partial_results=request.keep_partial_results,
        dedupe_across_chains=request.dedupe_across_chains,
    )


def _build_workflow(request: WorkflowRequest) -> Workflow:
    try:
        return WorkflowSerializer().deserialize_workflow({
            "nodes": request.nodes,
            "edges": request.edges
        })
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/")
async def index():
    return {"message": "nodeflow editor API", "docs": "/docs"}


@app.get("/api/nodes")
async def list_nodes():
    """Get all available node kinds"""
    registry = get_registry()

    nodes_info = []
    for kind in registry.list_node_types():
        metadata = registry.get_node_metadata(kind)
        node_class = registry.get_node_class(kind)
        template_node = registry.create_node(kind, "template", **node_class.default_config)
        nodes_info.append({
            "kind": kind,
            "label": node_class.default_label,
            "description": template_node.get_description(),
            "category": metadata.get("category", "other"),
            "defaultConfig": node_class.default_config,
            "fields": template_node.describe_fields()
        })

    return {"nodes": nodes_info}


@app.post("/api/workflow/validate")
async def validate_workflow(request: WorkflowRequest):
    """Validate a workflow"""
    workflow = _build_workflow(request)
    errors = workflow.validate()
    return {
        "valid": len(errors) == 0,
        "errors": errors
    }


@app.post("/api/workflow/execute")
def execute_workflow(request: ExecuteRequest):
    """Execute a workflow synchronously"""
    workflow = _build_workflow(request)

    executor = create_executor(request)
    try:
        result = executor.execute_workflow(workflow)
    finally:
        executor.close()

    return result.to_dict()


@app.post("/api/workflow/paths")
async def mapping_paths(request: PathsRequest):
    """List the dotted paths a node result offers for input mappings"""
    data = request.result
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    return {"paths": list_data_paths(data)}


@app.post("/api/workflow/save")
async def save_workflow(request: WorkflowRequest, path: str = Query(...)):
    """Save workflow to file"""
    workflow = _build_workflow(request)
    workflow_path = Path(path)
    try:
        WorkflowSerializer().save_workflow(workflow_path, workflow)
    except OSError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "path": str(workflow_path)}


@app.get("/api/workflow/load")
async def load_workflow(path: str):
    """Load workflow from file"""
    workflow_path = Path(path)
    if not workflow_path.exists():
        raise HTTPException(status_code=404, detail="Workflow file not found")

    serializer = WorkflowSerializer()
    try:
        workflow, metadata = serializer.load_workflow(workflow_path)
    except (WorkflowError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return serializer.serialize_workflow(workflow, metadata)


def main():
    """Run the web server"""
    import argparse
    parser = argparse.ArgumentParser(description="nodeflow editor API")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()
    setup_logging(args.verbose)

    uvicorn.run(
        "nodeflow.web.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()

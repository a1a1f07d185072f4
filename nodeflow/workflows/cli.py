#!/usr/bin/env python3
"""
CLI interface for node-based workflows.

Provides command-line interface for creating, executing, and validating workflows.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from nodeflow.engine.executor import WorkflowExecutor
from nodeflow.nodes.registry import get_registry
from nodeflow.utils.common import format_duration, print_section, save_json, setup_logging
from nodeflow.utils.config import get_config_manager
from nodeflow.workflows.graph import Workflow, WorkflowError
from nodeflow.workflows.serialization import WorkflowSerializer

logger = logging.getLogger(__name__)


def list_nodes(args):
    """List all available node kinds"""
    registry = get_registry()

    print_section("Available Node Kinds")
    for kind in sorted(registry.list_node_types()):
        metadata = registry.get_node_metadata(kind)
        node_class = registry.get_node_class(kind)
        description = metadata.get("description", "")
        print(f"  {kind:12} {node_class.default_label:16} - {description}")


def create_workflow(args):
    """Create a workflow file with one node per kind, chained in order"""
    workflow = Workflow()
    previous = None
    for index, kind in enumerate(args.kinds, 1):
        try:
            node = workflow.add_node(kind, node_id=f"{kind}-{index}",
                                     position={"x": 100 + 250 * (index - 1), "y": 100})
        except WorkflowError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if previous is not None:
            workflow.add_edge(previous.node_id, node.node_id)
        previous = node

    output_path = Path(args.output)
    WorkflowSerializer().save_workflow(output_path, workflow, {"name": output_path.stem})
    print(f"Created workflow with {len(workflow)} nodes: {output_path}")


def _load(path_arg: str) -> Workflow:
    workflow_path = Path(path_arg)

    if not workflow_path.exists():
        print(f"Error: Workflow file not found: {workflow_path}", file=sys.stderr)
        sys.exit(1)

    try:
        workflow, _ = WorkflowSerializer().load_workflow(workflow_path)
    except (WorkflowError, ValueError) as e:
        print(f"Error loading workflow: {e}", file=sys.stderr)
        sys.exit(1)
    return workflow


def execute_workflow(args):
    """Execute a workflow from JSON file"""
    workflow = _load(args.workflow)

    if not len(workflow):
        print("Error: No nodes found in workflow", file=sys.stderr)
        sys.exit(1)

    print(f"Executing workflow: {Path(args.workflow).name}")
    print(f"Nodes: {len(workflow)}, Edges: {len(workflow.edges)}")
    print("-" * 60)

    config = get_config_manager().load()
    executor = WorkflowExecutor(
        collaborators=config.collaborators,
        settings=config.execution,
        node_timeout=args.timeout,
        keep_partial_results=True if args.keep_partial else None,
        dedupe_across_chains=True if args.dedupe_chains else None,
    )

    try:
        result = executor.execute_workflow(workflow)
    finally:
        executor.close()

    print_section("Execution Results")
    print(f"Success: {result.success}")
    print(f"Total Nodes: {result.total_nodes}")
    print(f"Completed: {result.completed_nodes}")
    print(f"Failed: {result.failed_nodes}")
    print(f"Execution Time: {format_duration(result.execution_time)}")

    if result.error:
        print(f"\nRun error: {result.error}")

    for node_id, envelope in result.results.items():
        if isinstance(envelope, dict) and envelope.get("success") is False:
            print(f"  {node_id}: {envelope.get('error')}")

    if args.output:
        save_json(result.to_dict(), args.output)
        print(f"\nResults saved to: {args.output}")
    elif args.print_results:
        print(json.dumps(result.results, indent=2, default=str))

    sys.exit(0 if result.success else 1)


def validate_workflow(args):
    """Validate a workflow file"""
    workflow = _load(args.workflow)

    print(f"Validating workflow: {Path(args.workflow).name}")
    print("-" * 60)

    errors = workflow.validate()
    if errors:
        print("Validation Errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    print("Workflow is valid")
    print(f"  Nodes: {len(workflow)}")
    print(f"  Edges: {len(workflow.edges)}")


def configure(args):
    """Show, set or clear stored configuration"""
    config_manager = get_config_manager()
    if args.clear:
        config_manager.clear_credentials()
        print("Stored credentials cleared")
        return

    if args.gemini_key:
        if config_manager.get_gemini_api_key(prompt=True):
            print("Gemini API key stored")
        else:
            print("No Gemini API key entered", file=sys.stderr)
            sys.exit(1)
        return

    config = config_manager.load()
    print_section("nodeflow Configuration")
    print("Configuration is stored at:", config_manager.CONFIG_FILE)
    print(f"  Trigger URL:  {config.collaborators.trigger_url}")
    print(f"  LLM URL:      {config.collaborators.llm_url}")
    print(f"  Gemini key:   {'set' if config.collaborators.gemini_api_key else 'not set'}")
    print(f"  Node timeout: {config.execution.node_timeout}")
    print("\nUse --gemini-key to store a key, --clear to remove stored credentials.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="Build and execute node-based workflows",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    list_parser = subparsers.add_parser('list-nodes', help='List all available node kinds')
    list_parser.set_defaults(func=list_nodes)

    create_parser = subparsers.add_parser('create', help='Create a starter workflow file')
    create_parser.add_argument('output', help='Path of the workflow JSON file to write')
    create_parser.add_argument('--kinds', nargs='+', default=['trigger', 'function', 'llm'],
                               help='Node kinds to chain, in order')
    create_parser.set_defaults(func=create_workflow)

    execute_parser = subparsers.add_parser('execute', help='Execute a workflow')
    execute_parser.add_argument('workflow', help='Path to workflow JSON file')
    execute_parser.add_argument('--timeout', type=float,
                                help='Per-node collaborator timeout in seconds')
    execute_parser.add_argument('--keep-partial', action='store_true',
                                help='Keep completed results if the run aborts')
    execute_parser.add_argument('--dedupe-chains', action='store_true',
                                help='Execute shared nodes once per run instead of once per chain')
    execute_parser.add_argument('--output', help='Save execution results to file')
    execute_parser.add_argument('--print-results', action='store_true',
                                help='Print the results map as JSON')
    execute_parser.set_defaults(func=execute_workflow)

    validate_parser = subparsers.add_parser('validate', help='Validate a workflow file')
    validate_parser.add_argument('workflow', help='Path to workflow JSON file')
    validate_parser.set_defaults(func=validate_workflow)

    config_parser = subparsers.add_parser('config', help='Show or manage stored configuration')
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument('--clear', action='store_true', help='Remove stored credentials')
    config_group.add_argument('--gemini-key', action='store_true',
                              help='Prompt for the Gemini API key and store it')
    config_parser.set_defaults(func=configure)

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.verbose)
    args.func(args)


if __name__ == '__main__':
    main()

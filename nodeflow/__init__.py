"""
nodeflow - build and execute node-based data-flow workflows.

Nodes (trigger, function, api, utility, llm) are wired together with edges and
executed depth-first from their trigger nodes.
"""

__version__ = "1.0.0"

#!/usr/bin/env python3
"""
Function and utility nodes for data transformation.
"""
import json
import logging
from typing import Any, Dict

from nodeflow.engine.context import NodeContext
from nodeflow.engine.sandbox import run_user_code
from .base import ConfigField, FieldType, Node, mappings_field
from .registry import register_node

logger = logging.getLogger(__name__)


@register_node(metadata={"category": "function", "description": "Run sandboxed Python code against the input"})
class FunctionNode(Node):
    """Run user code as the body of a procedure taking ``input``"""

    kind = "function"
    default_label = "Function"
    default_config = {"code": 'return {"result": input["value"] * 2}'}

    def _define_fields(self):
        self.fields = {
            "code": ConfigField(
                name="code",
                field_type=FieldType.CODE,
                default="return input",
                description="Procedure body; the resolved input is bound to `input`"
            ),
            "inputMappings": mappings_field()
        }

    def execute(self, context: NodeContext) -> Dict[str, Any]:
        input_data = context.resolve_inputs(self.input_mappings())
        logger.debug("Function input for %s: %s", self.node_id, input_data)

        result = run_user_code(
            self.get_config("code"),
            input_data,
            time_budget=context.code_time_budget,
        )
        return {
            "success": True,
            "data": result,
            "inputData": input_data
        }


@register_node(metadata={"category": "utility", "description": "Describe a named operation over the input"})
class UtilityNode(Node):
    """Pass the input through a named operation with JSON parameters"""

    kind = "utility"
    default_label = "Transform"
    default_config = {"operation": "transform", "parameters": "{}"}

    def _define_fields(self):
        self.fields = {
            "operation": ConfigField(
                name="operation",
                field_type=FieldType.STRING,
                default="transform",
                description="Operation name"
            ),
            "parameters": ConfigField(
                name="parameters",
                field_type=FieldType.JSON,
                default="{}",
                description="Operation parameters as a JSON string"
            ),
            "inputMappings": mappings_field()
        }

    def execute(self, context: NodeContext) -> Dict[str, Any]:
        operation = self.get_config("operation")
        parameters = self.get_config("parameters")
        input_data = context.resolve_inputs(self.input_mappings())

        if isinstance(parameters, str):
            parameters = json.loads(parameters)

        logger.debug("Utility operation %s on %s", operation, self.node_id)
        return {
            "success": True,
            "data": {
                "operation": operation,
                "parameters": parameters,
                "inputData": input_data,
                "result": f"Utility operation '{operation}' completed successfully"
            }
        }

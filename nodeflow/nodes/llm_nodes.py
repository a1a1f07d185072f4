#!/usr/bin/env python3
"""
LLM processing nodes.

Renders a prompt template and hands it to the LLM processor collaborator.
"""
import logging
from typing import Any, Dict

from nodeflow.engine.context import NodeContext
from nodeflow.engine.template import render_template
from .base import ConfigField, FieldType, Node, mappings_field
from .registry import register_node

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"


@register_node(metadata={"category": "llm", "description": "Process input data with a generative model"})
class LlmNode(Node):
    """Process input data with a generative model"""

    kind = "llm"
    default_label = "LLM Processor"
    default_config = {"prompt": "Process this data and provide insights", "model": DEFAULT_MODEL}
    error_prefix = "LLM processing failed: "

    def _define_fields(self):
        self.fields = {
            "prompt": ConfigField(
                name="prompt",
                field_type=FieldType.TEMPLATE,
                default="Process this data",
                description="Prompt template; {{input...}} placeholders are filled in"
            ),
            "model": ConfigField(
                name="model",
                field_type=FieldType.STRING,
                default=DEFAULT_MODEL,
                description="Model name passed to the collaborator"
            ),
            "inputMappings": mappings_field()
        }

    def execute(self, context: NodeContext) -> Dict[str, Any]:
        model = self.get_config("model")
        input_data = context.resolve_inputs(self.input_mappings())
        prompt = render_template(self.get_config("prompt"), input_data)

        logger.info("Processing node %s with LLM %s", self.node_id, model)
        logger.debug("Processed prompt: %s", prompt)

        response = self.send_request(
            context,
            "POST",
            context.collaborators.llm_url,
            json={
                "inputData": input_data,
                "prompt": prompt,
                "model": model
            },
        )
        return response.json()

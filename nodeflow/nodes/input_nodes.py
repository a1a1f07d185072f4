#!/usr/bin/env python3
"""
Entry nodes that start a workflow chain.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from nodeflow.engine.context import NodeContext
from .base import ConfigField, FieldType, HTTP_METHODS, Node
from .registry import register_node

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@register_node(metadata={"category": "trigger", "description": "Start a chain through the HTTP trigger webhook"})
class TriggerNode(Node):
    """Start a chain by calling the HTTP trigger webhook"""

    kind = "trigger"
    default_label = "HTTP Trigger"
    default_config = {"method": "POST", "path": "/webhook"}
    error_prefix = "Trigger failed: "

    def _define_fields(self):
        self.fields = {
            "method": ConfigField(
                name="method",
                field_type=FieldType.CHOICE,
                default="POST",
                choices=HTTP_METHODS,
                description="HTTP method the webhook listens for"
            ),
            "path": ConfigField(
                name="path",
                field_type=FieldType.STRING,
                default="/webhook",
                description="Webhook path"
            )
        }

    def execute(self, context: NodeContext) -> Dict[str, Any]:
        payload = {
            "triggerNodeId": self.node_id,
            "timestamp": utc_timestamp(),
            "simulatedData": {
                "message": "Workflow triggered",
                "source": "workflow-builder",
                "method": self.get_config("method"),
                "path": self.get_config("path"),
            }
        }

        logger.info("Calling HTTP trigger for %s: %s", self.node_id, context.collaborators.trigger_url)
        response = self.send_request(
            context,
            "POST",
            context.collaborators.trigger_url,
            params={"triggerNodeId": self.node_id},
            json=payload,
        )
        return response.json()

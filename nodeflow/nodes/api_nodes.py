#!/usr/bin/env python3
"""
API processing nodes.

Issues caller-specified HTTP requests with templated headers and bodies.
"""
import json
import logging
from typing import Any, Dict

from nodeflow.engine.context import NodeContext
from nodeflow.engine.errors import CollaboratorError
from nodeflow.engine.template import render_template
from .base import ConfigField, FieldType, HTTP_METHODS, Node, mappings_field
from .registry import register_node

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://jsonplaceholder.typicode.com/posts/1"


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, keeping raw text otherwise"""
    if not text:
        return {}
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Response is not JSON, treating as text")
        return text


def is_empty_body(body: Any) -> bool:
    """Only null, false, zero and the empty string mean "no body"; {} and [] are sent"""
    if body is None or body is False or body == "":
        return True
    return isinstance(body, (int, float)) and not isinstance(body, bool) and body == 0


@register_node(metadata={"category": "api", "description": "Call an HTTP API with templated headers and body"})
class ApiNode(Node):
    """Call an HTTP API with templated headers and body"""

    kind = "api"
    default_label = "API Call"
    default_config = {"url": DEFAULT_URL, "method": "GET"}
    error_prefix = "API call failed: "

    def _define_fields(self):
        self.fields = {
            "url": ConfigField(
                name="url",
                field_type=FieldType.STRING,
                default=DEFAULT_URL,
                description="Request URL"
            ),
            "method": ConfigField(
                name="method",
                field_type=FieldType.CHOICE,
                default="GET",
                choices=HTTP_METHODS,
                description="HTTP method"
            ),
            "headers": ConfigField(
                name="headers",
                field_type=FieldType.JSON_TEMPLATE,
                default="{}",
                description="Headers as a JSON template"
            ),
            "bodyTemplate": ConfigField(
                name="bodyTemplate",
                field_type=FieldType.JSON_TEMPLATE,
                default="",
                description="Request body as a JSON template (ignored for GET)"
            ),
            "inputMappings": mappings_field()
        }

    def failure(self, message: str) -> Dict[str, Any]:
        envelope = super().failure(message)
        envelope["url"] = self.config.get("url")
        envelope["method"] = self.config.get("method")
        return envelope

    def _render_headers(self, input_data: Any) -> Dict[str, Any]:
        rendered = render_template(self.get_config("headers"), input_data)
        try:
            headers = rendered if isinstance(rendered, dict) else json.loads(rendered)
        except (TypeError, ValueError) as e:
            logger.warning("Header parsing error on %s: %s", self.node_id, e)
            return {}
        if not isinstance(headers, dict):
            logger.warning("Headers on %s are not a JSON object, ignoring", self.node_id)
            return {}
        return {str(key): str(value) for key, value in headers.items()}

    def _render_body(self, input_data: Any) -> Any:
        template = self.get_config("bodyTemplate")
        if template:
            rendered = render_template(template, input_data)
            if isinstance(rendered, (dict, list)):
                return rendered
            try:
                return json.loads(rendered)
            except (TypeError, ValueError) as e:
                logger.warning("Body template processing error on %s: %s", self.node_id, e)
        return input_data

    def execute(self, context: NodeContext) -> Dict[str, Any]:
        url = self.get_config("url")
        method = str(self.get_config("method")).upper()
        input_data = context.resolve_inputs(self.input_mappings())

        logger.info("Making %s request to %s (node %s)", method, url, self.node_id)
        headers = self._render_headers(input_data)

        request_kwargs: Dict[str, Any] = {"headers": headers}
        if method != "GET":
            body = self._render_body(input_data)
            if not is_empty_body(body):
                headers["Content-Type"] = "application/json"
                request_kwargs["data"] = json.dumps(body)

        try:
            response = self.send_request(context, method, url, **request_kwargs)
        except CollaboratorError as e:
            return self.failure(f"{e} - {e.body}")

        return {
            "success": True,
            "data": parse_body(response.text),
            "inputData": input_data,
            "statusCode": response.status_code
        }

#!/usr/bin/env python3
"""
Base classes for node-based workflow system.

Defines the core Node class and the config field system each node kind uses
to declare its configuration.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from nodeflow.engine.context import NodeContext
from nodeflow.engine.errors import CollaboratorError, ExecutionCancelled

logger = logging.getLogger(__name__)


class FieldType(Enum):
    """Value types for node config fields"""
    STRING = "string"  # Plain string
    CHOICE = "choice"  # One of a fixed set of strings
    TEMPLATE = "template"  # String with {{input...}} placeholders
    JSON = "json"  # JSON document stored as a string
    JSON_TEMPLATE = "json_template"  # JSON document with placeholders
    CODE = "code"  # Function node source
    MAPPINGS = "mappings"  # List of input mappings


HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass
class ConfigField:
    """Represents one configuration entry on a node"""
    name: str
    field_type: FieldType
    default: Any = None
    description: str = ""
    choices: Optional[List[str]] = None

    def validate(self, value: Any) -> Optional[str]:
        """Return an error message for an invalid value, or None"""
        if value is None or value == "":
            return None

        if self.field_type == FieldType.CHOICE and self.choices:
            if str(value).upper() not in self.choices:
                return f"{self.name} must be one of {', '.join(self.choices)}"

        if self.field_type == FieldType.JSON:
            try:
                json.loads(value)
            except (TypeError, ValueError) as e:
                return f"{self.name} is not valid JSON: {e}"

        if self.field_type == FieldType.MAPPINGS:
            if not isinstance(value, list):
                return f"{self.name} must be a list"
            for mapping in value:
                if not isinstance(mapping, dict) or not mapping.get("sourceNode") \
                        or not mapping.get("sourcePath"):
                    return f"{self.name} entries need sourceNode and sourcePath"

        return None


def mappings_field() -> ConfigField:
    return ConfigField(
        name="inputMappings",
        field_type=FieldType.MAPPINGS,
        default=[],
        description="Explicit projections of predecessor output fields"
    )


class Node(ABC):
    """
    Base class for all workflow nodes.

    Each node kind implements ``execute``, which turns a NodeContext into a
    result envelope (``{"success": ..., "data": ..., "error": ...}``).
    ``run`` wraps it so that failures become envelopes instead of exceptions.
    """

    kind: str = ""
    default_label: str = ""
    default_config: Dict[str, Any] = {}
    error_prefix: str = ""

    def __init__(self, node_id: str, label: Optional[str] = None,
                 position: Optional[Dict[str, float]] = None, **config):
        """
        Initialize a node.

        Args:
            node_id: Unique identifier for this node instance
            label: Display label (default: the kind's default label)
            position: Editor position, kept for serialization
            **config: Kind-specific configuration
        """
        self.node_id = node_id
        self.label = label if label is not None else self.default_label
        self.position = position or {"x": 0, "y": 0}
        self.config: Dict[str, Any] = dict(config)
        self.fields: Dict[str, ConfigField] = {}
        self._execution_state: str = "pending"  # pending, running, completed, failed
        self._error: Optional[str] = None

        self._define_fields()

    @abstractmethod
    def _define_fields(self):
        """Define config fields for this node kind"""
        pass

    @abstractmethod
    def execute(self, context: NodeContext) -> Dict[str, Any]:
        """
        Execute the node's operation.

        Args:
            context: Execution context (results so far, session, timeout)

        Returns:
            Result envelope
        """
        pass

    def get_config(self, name: str) -> Any:
        """Config value, falling back to the field default for empty values"""
        value = self.config.get(name)
        if value is None or value == "":
            field_def = self.fields.get(name)
            return field_def.default if field_def else None
        return value

    def input_mappings(self) -> List[Dict[str, Any]]:
        return self.config.get("inputMappings") or []

    def run(self, context: NodeContext) -> Dict[str, Any]:
        """Execute the node, converting any failure into a failure envelope"""
        self.set_state("running")
        try:
            envelope = self.execute(context)
        except ExecutionCancelled:
            self.set_state("cancelled")
            raise
        except Exception as e:
            logger.warning("%s node %s failed: %s", self.kind, self.node_id, e)
            envelope = self.failure(str(e))

        if isinstance(envelope, dict) and envelope.get("success") is False:
            self.set_error(str(envelope.get("error")))
        else:
            self.set_state("completed")
        return envelope

    def failure(self, message: str) -> Dict[str, Any]:
        """Build a failure envelope"""
        return {
            "success": False,
            "error": f"{self.error_prefix}{message}"
        }

    def send_request(self, context: NodeContext, method: str, url: str,
                     **kwargs) -> requests.Response:
        """
        Issue an HTTP request to a collaborator with the run's timeout.

        Raises:
            CollaboratorError: On a non-2xx response
        """
        context.check_cancelled()
        logger.debug("%s %s (node %s)", method, url, self.node_id)
        response = context.session.request(method, url, timeout=context.timeout, **kwargs)
        if not 200 <= response.status_code < 300:
            raise CollaboratorError(
                f"{response.status_code} {response.reason or ''}".strip(),
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def get_description(self) -> str:
        """Get description of what this node does"""
        return (self.__doc__ or "").strip()

    def validate(self) -> List[str]:
        """Validate node configuration, returning error messages"""
        errors = []
        for name, field_def in self.fields.items():
            error = field_def.validate(self.config.get(name))
            if error:
                errors.append(error)
        return errors

    def set_error(self, error: str):
        """Set error message"""
        self._error = error
        self._execution_state = "failed"

    def get_error(self) -> Optional[str]:
        """Get error message if execution failed"""
        return self._error

    def get_state(self) -> str:
        """Get current execution state"""
        return self._execution_state

    def set_state(self, state: str):
        """Set execution state"""
        self._execution_state = state
        if state != "failed":
            self._error = None

    def describe_fields(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {
                "type": field_def.field_type.value,
                "default": field_def.default,
                "description": field_def.description,
                "choices": field_def.choices,
            }
            for name, field_def in self.fields.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize node to dictionary"""
        return {
            "id": self.node_id,
            "type": self.kind,
            "position": self.position,
            "data": {
                "label": self.label,
                "config": self.config
            }
        }

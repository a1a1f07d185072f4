#!/usr/bin/env python3
"""
Template substitution for node configuration strings.

Placeholders look like ``{{ input.user.name }}`` and are resolved against
``{"input": <context>}``. Anything that does not resolve is left in place.
"""
import json
import logging
import re
from typing import Any

from nodeflow.engine.data import MISSING, get_path

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")


def to_template_string(value: Any) -> str:
    """String form of a resolved value"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def render_template(template: Any, context: Any) -> Any:
    """
    Substitute ``{{path}}`` placeholders in a template string.

    Args:
        template: Template text. Non-string values are returned unchanged.
        context: Data exposed to the template as ``input``

    Returns:
        Rendered string (or the original non-string value)
    """
    if not isinstance(template, str) or not template:
        return template

    root = {"input": context}

    def replace(match: "re.Match") -> str:
        path = match.group(1).strip()
        try:
            value = get_path(root, path)
        except Exception as e:
            logger.warning("Template processing error for %s: %s", path, e)
            return match.group(0)
        if value is MISSING:
            return match.group(0)
        return to_template_string(value)

    return PLACEHOLDER_RE.sub(replace, template)

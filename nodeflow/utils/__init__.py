"""
nodeflow utilities

Shared helpers and configuration management.
"""
from .config import (
    get_config_manager,
    ConfigManager,
    NodeflowConfig,
    CollaboratorConfig,
    ExecutionConfig,
)
from .common import (
    setup_logging,
    format_duration,
    print_section,
    save_json,
    load_json,
)

__all__ = [
    'get_config_manager',
    'ConfigManager',
    'NodeflowConfig',
    'CollaboratorConfig',
    'ExecutionConfig',
    'setup_logging',
    'format_duration',
    'print_section',
    'save_json',
    'load_json',
]

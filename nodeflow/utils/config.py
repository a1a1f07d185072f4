#!/usr/bin/env python3
"""
Configuration management for nodeflow.
Handles collaborator endpoints, execution defaults and credential storage.
"""
import getpass
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_COLLABORATOR_BASE = "http://127.0.0.1:8001/functions/v1"


@dataclass
class CollaboratorConfig:
    """Endpoints and credentials for external collaborators"""
    trigger_url: str = f"{DEFAULT_COLLABORATOR_BASE}/http-trigger"
    llm_url: str = f"{DEFAULT_COLLABORATOR_BASE}/llm-processor"
    gemini_api_key: Optional[str] = None
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"


@dataclass
class ExecutionConfig:
    """Defaults for workflow runs"""
    node_timeout: Optional[float] = 30.0
    code_time_budget: float = 5.0
    keep_partial_results: bool = False
    dedupe_across_chains: bool = False


@dataclass
class NodeflowConfig:
    """Main nodeflow configuration"""
    collaborators: CollaboratorConfig = field(default_factory=CollaboratorConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "collaborators": asdict(self.collaborators),
            "execution": asdict(self.execution)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeflowConfig":
        """Create from dictionary"""
        return cls(
            collaborators=CollaboratorConfig(**data.get("collaborators", {})),
            execution=ExecutionConfig(**data.get("execution", {}))
        )


ENV_OVERRIDES = {
    "NODEFLOW_TRIGGER_URL": ("collaborators", "trigger_url", str),
    "NODEFLOW_LLM_URL": ("collaborators", "llm_url", str),
    "GEMINI_API_KEY": ("collaborators", "gemini_api_key", str),
    "NODEFLOW_NODE_TIMEOUT": ("execution", "node_timeout", float),
}


class ConfigManager:
    """Manages nodeflow configuration stored as JSON"""

    CONFIG_FILE = Path.home() / ".nodeflow" / "config.json"

    def __init__(self, config_file: Optional[Path] = None):
        if config_file is not None:
            self.CONFIG_FILE = Path(config_file)
        self.config: Optional[NodeflowConfig] = None

    def _ensure_config_dir(self):
        """Ensure config directory exists"""
        self.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        self.CONFIG_FILE.parent.chmod(0o700)

    def _apply_env(self, config: NodeflowConfig):
        for env_name, (section, attr, cast) in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if not value:
                continue
            try:
                setattr(getattr(config, section), attr, cast(value))
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", env_name, value)

    def load(self, apply_env: bool = True) -> NodeflowConfig:
        """Load configuration from file, then apply environment overrides"""
        config = None
        if self.CONFIG_FILE.exists():
            try:
                with open(self.CONFIG_FILE, 'r') as f:
                    config = NodeflowConfig.from_dict(json.load(f))
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Could not load config file %s: %s", self.CONFIG_FILE, e)

        if config is None:
            config = NodeflowConfig()

        if apply_env:
            self._apply_env(config)
        self.config = config
        return config

    def save(self, config: Optional[NodeflowConfig] = None):
        """Save configuration to file"""
        if config:
            self.config = config

        if not self.config:
            return

        self._ensure_config_dir()
        with open(self.CONFIG_FILE, 'w') as f:
            json.dump(self.config.to_dict(), f, indent=2)
        # Set restrictive permissions
        self.CONFIG_FILE.chmod(0o600)

    def get_gemini_api_key(self, prompt: bool = True) -> Optional[str]:
        """Get the Gemini API key used by the LLM collaborator, prompting if needed"""
        config = self.load()

        if config.collaborators.gemini_api_key:
            return config.collaborators.gemini_api_key

        if prompt:
            api_key = getpass.getpass("Enter your Gemini API key (hidden): ").strip()
            if api_key:
                # Persist file values only, not environment overrides
                stored = self.load(apply_env=False)
                stored.collaborators.gemini_api_key = api_key
                self.save(stored)
                return api_key

        return None

    def clear_credentials(self):
        """Clear stored credentials"""
        config = self.load(apply_env=False)
        config.collaborators.gemini_api_key = None
        self.save(config)
        logger.info("Credentials cleared from %s", self.CONFIG_FILE)


# Global instance
_config_manager = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager

"""Configuration persistence manager for tracing defaults.

This module handles loading and saving of the user's default TraceOptions
to/from a JSON file.
"""

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Optional, Tuple

from vectortrace.models import CONFIG_FILE, TraceOptions

logger = logging.getLogger(__name__)


class ConfigManager:
    """Handles loading and saving of default trace options."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file (defaults to ~/.vectortrace_config.json)
        """
        self.config_path = config_path

    def load(self) -> TraceOptions:
        """Load options from file, returning empty options if not found.

        Returns:
            TraceOptions with loaded values; unknown keys are ignored
        """
        options = TraceOptions()

        try:
            if self.config_path.exists():
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                    # Only copy known option names (fallback to defaults)
                    for option in fields(TraceOptions):
                        if option.name in data:
                            setattr(options, option.name, data[option.name])
                logger.info(f"Loaded trace options from {self.config_path}")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Could not load config file: {e}")

        return options

    def save(self, options: TraceOptions) -> Tuple[bool, Optional[str]]:
        """Save options to file.

        Args:
            options: TraceOptions to save; ``None`` fields are omitted

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        data = {key: value for key, value in asdict(options).items() if value is not None}
        try:
            with open(self.config_path, "w") as f:
                json.dump(data, f, indent=2)
            return True, None
        except OSError as e:
            return False, str(e)

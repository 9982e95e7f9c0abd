"""Plain-text ``key = value`` config loading with typed defaults."""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from mot_playback.core.logging_utils import get_module_logger

logger = get_module_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.txt"


class ConfigLoader:
    """Config file loader.

    Lines are ``key = value``; blank lines and ``#`` comments are skipped.
    When a default exists for a key the value is coerced to the default's
    type, otherwise the most specific of bool/int/float/str is chosen.
    """

    @staticmethod
    async def load_async(
        config_path: Path,
        defaults: Optional[Dict[str, Any]] = None,
        strict: bool = False
    ) -> Dict[str, Any]:
        """Async version of load() using asyncio.to_thread for file I/O."""
        return await asyncio.to_thread(ConfigLoader.load, config_path, defaults, strict)

    @staticmethod
    def load(
        config_path: Path,
        defaults: Optional[Dict[str, Any]] = None,
        strict: bool = False
    ) -> Dict[str, Any]:
        config = defaults.copy() if defaults else {}

        if not config_path.exists():
            if defaults:
                logger.debug("Config file not found at %s, using defaults", config_path)
            else:
                logger.warning("Config file not found at %s and no defaults provided", config_path)
            return config

        logger.debug("Loading config from: %s", config_path)

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_path, e)
            return config

        for line_num, line in enumerate(lines, 1):
            line = line.strip()

            if not line or line.startswith('#'):
                continue

            if '=' not in line:
                logger.warning(
                    "Invalid config line %d (missing '='): %s",
                    line_num, line
                )
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#', 1)[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            if strict and defaults is not None and key not in defaults:
                logger.warning(
                    "Unknown config key '%s' (line %d) - ignored in strict mode",
                    key, line_num
                )
                continue

            if defaults and key in defaults:
                config[key] = ConfigLoader._parse_value_with_type(
                    value, type(defaults[key]), defaults[key]
                )
            else:
                config[key] = ConfigLoader._parse_value(value)

        logger.info("Loaded config from %s (%d values)", config_path, len(config))
        return config

    @staticmethod
    def _parse_value(value: str) -> Any:
        value_lower = value.lower()
        if value_lower in ('true', 'false', 'yes', 'no', 'on', 'off'):
            return value_lower in ('true', 'yes', 'on')

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @staticmethod
    def _parse_value_with_type(value: str, target_type: type, default: Any = None) -> Any:
        if target_type == bool:
            value_lower = value.lower()
            return value_lower in ('true', 'yes', 'on', '1')

        if target_type is int:
            try:
                return int(value, 0)
            except ValueError:
                logger.warning("Failed to parse '%s' as int, using default", value)
                return default if default is not None else 0

        if target_type is float:
            try:
                return float(value)
            except ValueError:
                logger.warning("Failed to parse '%s' as float, using default", value)
                return default if default is not None else 0.0

        return value


__all__ = ["ConfigLoader", "DEFAULT_CONFIG_PATH"]

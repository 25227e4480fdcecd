"""
Global application settings and preferences.
Uses JSON file for persistent storage across sessions.

Includes:
- Rendering defaults (colormap, render mode, amplitude scaling, wiggle style)
- Reader defaults (max samples per trace, header spec directory)
- Worker count for parallel normalization
- Recent files

The settings directory is ~/.tracelens unless TRACELENS_HOME is set.
"""
import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, List, Any

# Set up module logger
logger = logging.getLogger(__name__)

HOME_ENV_VAR = 'TRACELENS_HOME'


def _settings_dir() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / '.tracelens'


class AppSettings:
    """
    Singleton class for managing global application settings.

    Settings are automatically persisted to a JSON file
    (~/.tracelens/settings.json). Invalid values are rejected on set and
    replaced by their default on get, so a hand-edited file can never break
    a render.
    """

    _instance: Optional['AppSettings'] = None

    # Accepted wire names
    VALID_COLORMAPS = ['seismic', 'grayscale', 'grayscale-inverted', 'viridis']
    VALID_RENDER_MODES = ['variable-density', 'wiggle', 'wiggle-variable-density']
    VALID_SCALING_TYPES = ['global', 'per-trace', 'percentile', 'manual']

    SETTINGS_FILENAME = 'settings.json'

    def __new__(cls):
        """Singleton pattern - only one instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize settings (only once due to singleton)."""
        if self._initialized:
            return

        self.settings_dir = _settings_dir()
        self.settings_file = self.settings_dir / self.SETTINGS_FILENAME

        # Default values
        self._defaults = {
            'colormap': 'seismic',
            'render_mode': 'variable-density',
            'amplitude_scaling': {'type': 'percentile', 'percentile': 0.98},
            'wiggle_config': None,        # None = mode-specific default
            'max_samples': None,          # None = full traces
            'render_workers': 0,          # 0 = auto
            'spec_directory': None,       # None = bundled spec documents
            'recent_files': [],
            'max_recent_files': 10,
        }

        # Current settings (loaded from file or defaults)
        self._settings: Dict[str, Any] = {}

        self._load_settings()

        self._initialized = True
        logger.info(f"AppSettings initialized from {self.settings_file}")

    def _ensure_settings_dir(self):
        """Ensure the settings directory exists."""
        try:
            self.settings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create settings directory: {e}")

    def _load_settings(self):
        """Load settings from JSON file."""
        if self.settings_file.exists():
            try:
                with open(self.settings_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                self._settings = loaded if isinstance(loaded, dict) else {}
                logger.debug(f"Loaded settings from {self.settings_file}")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not load settings file: {e}")
                self._settings = {}
        else:
            self._settings = {}
            logger.debug("No settings file found, using defaults")

    def _save_settings(self):
        """Save settings to JSON file."""
        try:
            self._ensure_settings_dir()
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=2, default=str)
            logger.debug(f"Saved settings to {self.settings_file}")
        except OSError as e:
            logger.error(f"Could not save settings: {e}")

    def _get(self, key: str, default=None):
        """Get a setting value, falling back to defaults."""
        if default is None:
            default = self._defaults.get(key)
        return self._settings.get(key, default)

    def _set(self, key: str, value: Any, save: bool = True):
        """Set a setting value and optionally save to file."""
        self._settings[key] = value
        if save:
            self._save_settings()

    # =========================================================================
    # Rendering
    # =========================================================================

    def get_colormap(self) -> str:
        """Get the default colormap name."""
        name = self._get('colormap')
        if name not in self.VALID_COLORMAPS:
            name = self._defaults['colormap']
        return name

    def set_colormap(self, name: str):
        """
        Set the default colormap.

        Args:
            name: One of VALID_COLORMAPS
        """
        if name not in self.VALID_COLORMAPS:
            raise ValueError(f"Invalid colormap: {name}. Must be one of {self.VALID_COLORMAPS}")
        self._set('colormap', name)

    def get_render_mode(self) -> str:
        """Get the default render mode name."""
        mode = self._get('render_mode')
        if mode not in self.VALID_RENDER_MODES:
            mode = self._defaults['render_mode']
        return mode

    def set_render_mode(self, mode: str):
        """Set the default render mode (one of VALID_RENDER_MODES)."""
        if mode not in self.VALID_RENDER_MODES:
            raise ValueError(f"Invalid render mode: {mode}. Must be one of {self.VALID_RENDER_MODES}")
        self._set('render_mode', mode)

    def _valid_scaling(self, scaling: Any) -> bool:
        return isinstance(scaling, dict) and scaling.get('type') in self.VALID_SCALING_TYPES

    def get_amplitude_scaling(self) -> Dict[str, Any]:
        """
        Get the default amplitude scaling in wire format.

        Returns:
            Dict such as {'type': 'percentile', 'percentile': 0.98}
        """
        scaling = self._get('amplitude_scaling')
        if not self._valid_scaling(scaling):
            scaling = self._defaults['amplitude_scaling']
        return dict(scaling)

    def set_amplitude_scaling(self, scaling: Dict[str, Any]):
        """Set the default amplitude scaling (wire-format dict tagged by 'type')."""
        if not self._valid_scaling(scaling):
            raise ValueError(
                f"Invalid amplitude scaling: {scaling}. "
                f"'type' must be one of {self.VALID_SCALING_TYPES}"
            )
        self._set('amplitude_scaling', dict(scaling))

    def get_wiggle_config(self) -> Optional[Dict[str, Any]]:
        """Get the wiggle style override, or None for the mode default."""
        config = self._get('wiggle_config')
        return dict(config) if isinstance(config, dict) else None

    def set_wiggle_config(self, config: Optional[Dict[str, Any]]):
        """Set the wiggle style override (wire-format dict) or None."""
        if config is not None and not isinstance(config, dict):
            raise ValueError(f"Invalid wiggle config: {config}")
        self._set('wiggle_config', config)

    # =========================================================================
    # Reader
    # =========================================================================

    def get_max_samples(self) -> Optional[int]:
        """Get the per-trace sample cap, or None for full traces."""
        value = self._get('max_samples')
        if value is None:
            return None
        try:
            value = int(value)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    def set_max_samples(self, value: Optional[int]):
        """Set the per-trace sample cap (None or a positive int)."""
        if value is not None and (not isinstance(value, int) or value <= 0):
            raise ValueError(f"Invalid max samples: {value}")
        self._set('max_samples', value)

    def get_spec_directory(self) -> Optional[Path]:
        """Get the header spec directory override, or None for the bundled specs."""
        value = self._get('spec_directory')
        return Path(value) if value else None

    def set_spec_directory(self, path: Optional[str]):
        """Set the header spec directory override."""
        self._set('spec_directory', str(path) if path else None)

    # =========================================================================
    # Workers
    # =========================================================================

    def get_render_workers(self) -> int:
        """Get the configured worker count (0 = auto)."""
        value = self._get('render_workers', 0)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    def set_render_workers(self, workers: int):
        """Set the worker count (0 = auto)."""
        if workers < 0:
            raise ValueError(f"Invalid worker count: {workers}")
        self._set('render_workers', int(workers))

    def get_effective_workers(self) -> int:
        """
        Get the worker count to use for parallel normalization.

        Returns:
            Configured count, or CPU cores - 1 (at least 1) when set to auto
        """
        workers = self.get_render_workers()
        if workers > 0:
            return workers
        return max(1, (os.cpu_count() or 2) - 1)

    # =========================================================================
    # Recent files
    # =========================================================================

    def get_recent_files(self) -> List[str]:
        """Get list of recently opened files."""
        recent = self._get('recent_files', [])
        return recent if isinstance(recent, list) else []

    def add_recent_file(self, filepath: str):
        """Add file to recent files list."""
        recent = self.get_recent_files().copy()
        if filepath in recent:
            recent.remove(filepath)
        recent.insert(0, filepath)
        recent = recent[:self.get_max_recent_files()]
        self._set('recent_files', recent)

    def clear_recent_files(self):
        """Clear recent files list."""
        self._set('recent_files', [])

    def get_max_recent_files(self) -> int:
        """Get maximum number of recent files to remember."""
        value = self._get('max_recent_files', 10)
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return 10

    def set_max_recent_files(self, count: int):
        """Set maximum number of recent files to remember."""
        self._set('max_recent_files', max(1, count))

    def reset_to_defaults(self):
        """Reset all settings to default values."""
        self._settings = self._defaults.copy()
        self._save_settings()
        logger.info("Settings reset to defaults")

    def __repr__(self) -> str:
        return (f"AppSettings(colormap={self.get_colormap()}, "
                f"render_mode={self.get_render_mode()})")


# Global singleton instance
def get_settings() -> AppSettings:
    """Get the global settings instance."""
    return AppSettings()

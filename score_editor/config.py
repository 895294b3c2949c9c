"""
Configuration module for the score editor core.

Handles history limits, defaults for new scores, note-entry
preferences and debug logging switches.
"""

import json
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class HistoryConfig:
    """Configuration for the undo/redo history."""
    max_history: int = 100


@dataclass
class ScoreDefaults:
    """Defaults used when a new score is created."""
    title: str = "Untitled"
    time_signature: str = "4/4"
    key_signature: str = "C"
    bpm: int = 120
    clef: str = "treble"  # "treble", "bass", "alto", "tenor"
    grand_staff: bool = False


@dataclass
class EntryConfig:
    """Configuration for note entry."""
    default_duration: str = "quarter"
    default_dotted: bool = False
    input_mode: str = "NOTE"  # "NOTE" or "REST"


@dataclass
class DebugConfig:
    """Switches for debug logging inside the engines."""
    log_commands: bool = False
    log_state_changes: bool = False


@dataclass
class Config:
    """
    Main configuration class for the score editor.

    Handles loading/saving settings as JSON.
    """

    history: HistoryConfig = field(default_factory=HistoryConfig)
    score: ScoreDefaults = field(default_factory=ScoreDefaults)
    entry: EntryConfig = field(default_factory=EntryConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    # Application directory
    _config_dir: Path = field(default_factory=lambda: Path.home() / ".score_editor")

    @property
    def config_file(self) -> Path:
        """Path of the JSON settings file."""
        return self._config_dir / "config.json"

    def to_dict(self) -> dict:
        return {
            "history": asdict(self.history),
            "score": asdict(self.score),
            "entry": asdict(self.entry),
            "debug": asdict(self.debug),
        }

    def save(self) -> None:
        """Save configuration to disk."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> "Config":
        """
        Load configuration from disk or create default.

        Args:
            config_dir: Directory holding config.json. Defaults to
                ~/.score_editor

        Returns:
            Config object
        """
        config = cls() if config_dir is None else cls(_config_dir=Path(config_dir))

        if config.config_file.exists():
            try:
                with open(config.config_file, "r") as f:
                    data = json.load(f)

                if "history" in data:
                    config.history = HistoryConfig(**data["history"])
                if "score" in data:
                    config.score = ScoreDefaults(**data["score"])
                if "entry" in data:
                    config.entry = EntryConfig(**data["entry"])
                if "debug" in data:
                    config.debug = DebugConfig(**data["debug"])

            except (json.JSONDecodeError, TypeError, KeyError) as e:
                logger.warning(f"Could not load config file: {e}")
                return cls() if config_dir is None else cls(_config_dir=Path(config_dir))

        return config


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the application configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the application configuration (None reloads lazily)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the configuration to defaults."""
    global _config
    _config = Config()
    _config.save()

# config_utils.py - YAML Configuration System for ScormLens
"""
ScormLens configuration utilities with YAML file support.

Configuration Resolution Order (highest to lowest priority):
1. Environment variables (SCORMLENS_MAX_WORKERS, SCORMLENS_MATERIALIZE_MEDIA, ...)
2. scormlens.yaml in the working directory
3. ~/.scormlens/config.yaml (global defaults)

Usage:
    from scormlens.config_utils import get_config

    config = get_config()
    print(config.max_workers)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

import yaml

from scormlens.errors import invalid_config_value_error, invalid_yaml_error


DEFAULT_HTML_KEYWORDS = ["quiz", "assessment", "question", "test", "exam"]
DEFAULT_RUNTIME_FILES = ["scormdriver.js", "apibridge.js", "scorm.js"]
DEFAULT_CAPTION_EXTENSIONS = [".vtt", ".srt", ".sub", ".txt"]

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


@dataclass
class AnalyzerConfig:
    """Complete ScormLens configuration"""
    # Package layout
    manifest_name: str = "imsmanifest.xml"

    # Concurrency (<= 1 runs every per-entry task inline)
    max_workers: int = 4

    # Read video/audio payloads into MediaFile.data
    materialize_media: bool = True

    # HTML heuristic
    html_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_HTML_KEYWORDS))
    min_question_length: int = 10
    max_question_length: int = 200

    # Script heuristic
    script_min_length: int = 20

    # Validator
    runtime_files: List[str] = field(default_factory=lambda: list(DEFAULT_RUNTIME_FILES))

    # Caption/transcript inventory
    caption_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_CAPTION_EXTENSIONS))

    # Extra settings from config file
    extra: Dict[str, Any] = field(default_factory=dict)

    # Track where values came from (for debugging)
    _sources: Dict[str, str] = field(default_factory=dict)


# YAML key -> (attribute, expected description)
INT_KEYS = {
    "max_workers": "a non-negative integer",
    "min_question_length": "a non-negative integer",
    "max_question_length": "a positive integer",
    "script_min_length": "a non-negative integer",
}
LIST_KEYS = {"html_keywords", "runtime_files", "caption_extensions"}
KNOWN_KEYS = {"manifest_name", "materialize_media"} | set(INT_KEYS) | LIST_KEYS


class ConfigLoader:
    """Load configuration from multiple sources"""

    def __init__(self, work_dir: Optional[Path] = None):
        self.work_dir = Path(work_dir) if work_dir else Path.cwd()
        self.config = AnalyzerConfig()

    def load(self) -> AnalyzerConfig:
        """Load configuration from all sources in priority order"""
        # Load in reverse priority (lowest first, higher overwrites)
        self._load_global_config()
        self._load_yaml_config()
        self._load_env_vars()
        return self.config

    def _load_global_config(self):
        """Load ~/.scormlens/config.yaml if it exists"""
        global_config = Path.home() / ".scormlens" / "config.yaml"
        if global_config.exists():
            self._load_yaml_file(global_config, "global")

    def _load_yaml_config(self):
        """Load scormlens.yaml from the working directory"""
        yaml_path = self.work_dir / "scormlens.yaml"
        if yaml_path.exists():
            self._load_yaml_file(yaml_path, "scormlens.yaml")

    def _load_yaml_file(self, path: Path, source_name: str):
        """Load settings from a YAML file"""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise invalid_yaml_error(str(path), e)
        if not isinstance(data, dict):
            raise invalid_config_value_error(str(path), data, "a mapping of settings", source_name)

        if "manifest_name" in data:
            self._set("manifest_name", str(data["manifest_name"]), source_name)

        if "materialize_media" in data:
            self._set("materialize_media",
                      self._as_bool("materialize_media", data["materialize_media"], source_name),
                      source_name)

        for key in INT_KEYS:
            if key in data:
                self._set(key, self._as_int(key, data[key], source_name), source_name)

        for key in LIST_KEYS:
            if key in data:
                value = data[key]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise invalid_config_value_error(key, value, "a list of strings", source_name)
                self._set(key, list(value), source_name)

        # Store any extra settings
        for key, value in data.items():
            if key not in KNOWN_KEYS:
                self.config.extra[key] = value

    def _load_env_vars(self):
        """Load from environment variables (highest priority)"""
        workers = os.environ.get("SCORMLENS_MAX_WORKERS")
        if workers is not None:
            source = "env:SCORMLENS_MAX_WORKERS"
            self._set("max_workers", self._as_int("max_workers", workers, source), source)

        materialize = os.environ.get("SCORMLENS_MATERIALIZE_MEDIA")
        if materialize is not None:
            source = "env:SCORMLENS_MATERIALIZE_MEDIA"
            self._set("materialize_media", self._as_bool("materialize_media", materialize, source), source)

        manifest_name = os.environ.get("SCORMLENS_MANIFEST_NAME")
        if manifest_name:
            self._set("manifest_name", manifest_name, "env:SCORMLENS_MANIFEST_NAME")

    def _set(self, attr: str, value: Any, source_name: str):
        setattr(self.config, attr, value)
        self.config._sources[attr] = source_name

    @staticmethod
    def _as_bool(key: str, value: Any, source_name: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (str, int)):
            text = str(value).strip().lower()
            if text in TRUTHY:
                return True
            if text in FALSY:
                return False
        raise invalid_config_value_error(key, value, "true or false", source_name)

    @staticmethod
    def _as_int(key: str, value: Any, source_name: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise invalid_config_value_error(key, value, INT_KEYS[key], source_name)
        if number < 0 or (key == "max_question_length" and number == 0):
            raise invalid_config_value_error(key, value, INT_KEYS[key], source_name)
        return number


# ============================================================================
# Public API
# ============================================================================

def get_config(work_dir: Optional[Path] = None) -> AnalyzerConfig:
    """
    Get complete ScormLens configuration.

    Args:
        work_dir: Directory holding scormlens.yaml (defaults to cwd)

    Returns:
        AnalyzerConfig with all settings resolved

    Raises:
        ConfigurationError: If a configured value has the wrong shape
    """
    loader = ConfigLoader(work_dir)
    return loader.load()


def create_config_template(include_comments: bool = True) -> str:
    """
    Generate a scormlens.yaml template.

    Args:
        include_comments: Whether to include explanatory comments

    Returns:
        YAML string ready to write to file
    """
    if include_comments:
        return '''# ScormLens Configuration File
# Environment variables (SCORMLENS_*) override these values

# Manifest entry name at the package root
manifest_name: imsmanifest.xml

# Worker threads for per-file work (0 or 1 = run inline)
max_workers: 4

# Read video/audio payloads into memory during analysis
materialize_media: true

# HTML heuristic: files must mention one of these to be scanned
html_keywords: [quiz, assessment, question, test, exam]
min_question_length: 10     # Shorter fragments are treated as decoration
max_question_length: 200    # Longer text is truncated

# Script heuristic: generic literals must be longer than this
script_min_length: 20

# Validator: advisory runtime file check
runtime_files: [scormdriver.js, apibridge.js, scorm.js]

# Files listed as captions/transcripts
caption_extensions: [.vtt, .srt, .sub, .txt]
'''
    else:
        return '''manifest_name: imsmanifest.xml
max_workers: 4
materialize_media: true
html_keywords: [quiz, assessment, question, test, exam]
min_question_length: 10
max_question_length: 200
script_min_length: 20
runtime_files: [scormdriver.js, apibridge.js, scorm.js]
caption_extensions: [.vtt, .srt, .sub, .txt]
'''

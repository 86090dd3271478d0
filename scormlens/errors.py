# errors.py
"""
Custom exception classes with improved error messages for ScormLens

All exceptions include:
- Clear error description
- Actionable suggestions
- Relevant context

Only the fatal taxonomy lives here. Everything else found while analyzing
a package is reported as a warning on the result, not raised.
"""
from typing import Optional, Dict, Any


class ScormLensError(Exception):
    """Base exception for all ScormLens errors"""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        self.cause = cause
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error with all details"""
        lines = [
            "",
            "=" * 70,
            f"❌ {self.__class__.__name__}",
            "=" * 70,
            "",
            self.message,
        ]

        if self.context:
            lines.append("")
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestion:
            lines.append("")
            lines.append("💡 Suggestion:")
            lines.append(f"  {self.suggestion}")

        if self.cause:
            lines.append("")
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")

        lines.append("")
        lines.append("=" * 70)
        lines.append("")

        return "\n".join(lines)


class ArchiveUnreadable(ScormLensError):
    """Input is not a readable ZIP archive"""
    pass


class ManifestMissing(ScormLensError):
    """Package has no imsmanifest.xml"""
    pass


class ManifestMalformed(ScormLensError):
    """imsmanifest.xml could not be parsed"""
    pass


class ConfigurationError(ScormLensError):
    """Configuration is missing or invalid"""
    pass


# Specific error factory functions

def archive_unreadable_error(
    source: str,
    cause: Optional[Exception] = None
) -> ArchiveUnreadable:
    """Create error for corrupt or non-ZIP input"""
    return ArchiveUnreadable(
        message=f"Could not open package as a ZIP archive: {source}",
        suggestion=(
            "Check that the file is a complete SCORM package (.zip).\n"
            "Re-export it from the authoring tool if the download was interrupted."
        ),
        context={"source": source},
        cause=cause
    )


def manifest_missing_error(
    manifest_name: str,
    entry_count: int
) -> ManifestMissing:
    """Create error when the manifest entry does not exist"""
    return ManifestMissing(
        message=f"No {manifest_name} found at the package root",
        suggestion=(
            "Run the validator to locate a differently-cased manifest or\n"
            "synthesize a minimal one:\n"
            "  scormlens validate PACKAGE --repair-output fixed.zip"
        ),
        context={
            "expected_entry": manifest_name,
            "entries_in_archive": entry_count,
        }
    )


def manifest_malformed_error(
    manifest_name: str,
    cause: Optional[Exception] = None
) -> ManifestMalformed:
    """Create error when the manifest XML cannot be parsed"""
    context: Dict[str, Any] = {"manifest": manifest_name}
    line = getattr(cause, "lineno", None)
    if line:
        context["line"] = line

    return ManifestMalformed(
        message=f"Malformed XML in {manifest_name}",
        suggestion=(
            "Common issues:\n"
            "  - Unescaped '&' in titles or descriptions\n"
            "  - Mismatched or unclosed tags\n\n"
            "The validator can patch these automatically:\n"
            "  scormlens validate PACKAGE --repair-output fixed.zip"
        ),
        context=context,
        cause=cause
    )


def invalid_yaml_error(
    path: str,
    cause: Exception
) -> ConfigurationError:
    """Create error for a config file that is not valid YAML"""
    return ConfigurationError(
        message=f"Invalid YAML in {path}",
        suggestion=(
            "Check indentation and quoting, or regenerate the file:\n"
            "  scormlens config --template > scormlens.yaml"
        ),
        context={"file": path},
        cause=cause
    )


def invalid_config_value_error(
    key: str,
    value: Any,
    expected: str,
    source: str
) -> ConfigurationError:
    """Create error for a configuration value of the wrong shape"""
    return ConfigurationError(
        message=f"Invalid value for '{key}': {value!r}",
        suggestion=f"Set '{key}' to {expected}",
        context={
            "key": key,
            "value": value,
            "source": source,
        }
    )

"""
ScormLens - SCORM package analyzer

    from scormlens import analyze_package, validate_and_repair

    analysis = analyze_package(zip_bytes)
    result = validate_and_repair(zip_bytes)
"""

__version__ = "1.0.0"

from scormlens.analyzer import analyze_file, analyze_package
from scormlens.errors import (
    ArchiveUnreadable,
    ConfigurationError,
    ManifestMalformed,
    ManifestMissing,
    ScormLensError,
)
from scormlens.repair import validate_and_repair

__all__ = [
    "__version__",
    "analyze_file",
    "analyze_package",
    "validate_and_repair",
    "ScormLensError",
    "ArchiveUnreadable",
    "ManifestMissing",
    "ManifestMalformed",
    "ConfigurationError",
]

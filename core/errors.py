"""
Exception taxonomy for the conversion pipeline.

Every terminal failure carries a machine-readable code, a human-readable
message and, where one exists, an actionable suggestion.
"""

from pathlib import Path
from typing import List, Optional, Union


class TaptikError(Exception):
    """Base exception for conversion pipeline failures."""

    code = 'TAPTIK_ERROR'

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        return self.message


class NotAPlatformProject(TaptikError):
    """Raised when extract is called on a directory the builder does not recognise."""

    code = 'NOT_A_PLATFORM_PROJECT'

    def __init__(self, platform: str, root: Union[str, Path]):
        super().__init__(
            f"No {platform} configuration detected in {root}",
            suggestion=f"Check that {root} contains {platform} configuration files",
        )
        self.platform = platform
        self.root = Path(root)


class ValidationFailed(TaptikError):
    """Raised when structural or security validation produced errors."""

    code = 'VALIDATION_FAILED'

    def __init__(self, errors: List, platform: Optional[str] = None):
        count = len(errors)
        where = f" for {platform}" if platform else ""
        first = f": {errors[0].message}" if errors else ""
        super().__init__(
            f"Validation failed{where} with {count} error(s){first}",
            suggestion="Fix the reported errors and run the build again",
        )
        self.errors = list(errors)
        self.platform = platform


class NoSourceConfiguration(TaptikError):
    """Raised when a conversion is requested from an empty source section."""

    code = 'NO_SOURCE_CONFIGURATION'

    def __init__(self, platform: str):
        super().__init__(
            f"No {platform} configuration found in context",
            suggestion=f"Build the context from a {platform} project first",
        )
        self.platform = platform


class FileOperationFailed(TaptikError):
    """Raised when a filesystem operation fails for a reason other than a missing file."""

    code = 'FILE_OPERATION_FAILED'

    def __init__(self, path: Union[str, Path], operation: str, reason: str,
                 suggestion: Optional[str] = None):
        super().__init__(
            f"Failed to {operation} {path}: {reason}",
            suggestion=suggestion or "Check that the path exists and is accessible",
        )
        self.path = Path(path)
        self.operation = operation


class UnsupportedConversion(TaptikError):
    """Raised when no converter or chain exists for a platform pair."""

    code = 'UNSUPPORTED_CONVERSION'

    def __init__(self, source: str, target: str):
        super().__init__(
            f"No conversion available from {source} to {target}",
            suggestion="Run with --list-conversions to see the supported pairs",
        )
        self.source = source
        self.target = target

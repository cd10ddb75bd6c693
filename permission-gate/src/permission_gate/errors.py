"""Error taxonomy for permission-gate.

Every failure the gate knows about derives from `PermissionGateError` so the
CLI layer can map it to an exit code in one place. `DriftDetectedError` is the
one designed FAIL outcome; everything else is an infrastructure failure that
aborts the whole run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from permission_gate.diff import DiffResult

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INFRA_FAILURE = 2


class PermissionGateError(RuntimeError):
    """Base class for all gate failures."""

    exit_code: int = EXIT_FAILURE
    is_infrastructure: bool = True

    def resolve_exit_code(self, *, distinct: bool = False) -> int:
        if distinct and self.is_infrastructure:
            return EXIT_INFRA_FAILURE
        return self.exit_code


class InputError(PermissionGateError):
    """Raised for a missing artifact, an unsupported extension or bad arguments."""


class BaselineFormatError(InputError):
    """Raised when the baseline document is not valid JSON or violates its schema."""


class ToolNotFoundError(PermissionGateError):
    """Raised when a required external inspection/bundling tool is missing."""


class ToolExecutionError(PermissionGateError):
    """Raised when an external tool exits non-zero."""


class PackageIdentityError(PermissionGateError):
    """Raised when the owning package identity cannot be parsed or is malformed."""


class BundleNotFoundError(PermissionGateError):
    """Raised when an IPA carries no usable application bundle."""


class PlistConversionError(PermissionGateError):
    """Raised when a property list cannot be read as a key/value document."""


class UnpackError(PermissionGateError):
    """Raised for corrupt or non-archive input."""


class FetchError(PermissionGateError):
    """Raised when a remote artifact cannot be downloaded."""


class AuthenticationError(FetchError):
    """Raised when the server answered with an authentication/login page."""


class DriftDetectedError(PermissionGateError):
    """Raised in validate mode when permissions were added or removed."""

    is_infrastructure = False

    def __init__(self, diffs: Mapping[str, "DiffResult"]) -> None:
        self.diffs = dict(diffs)
        parts = []
        for platform in sorted(self.diffs):
            d = self.diffs[platform]
            if d.added:
                parts.append(f"{platform} added: {', '.join(d.added)}")
            if d.removed:
                parts.append(f"{platform} removed: {', '.join(d.removed)}")
        super().__init__("permission drift detected (" + "; ".join(parts) + ")")

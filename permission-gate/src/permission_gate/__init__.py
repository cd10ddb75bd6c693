"""permission-gate: detect permission drift in Android and iOS app artifacts.

Extracts declared permissions from APK/AAB/IPA files, normalizes app-defined
Android permissions against the owning package, and diffs the result against
a reviewed baseline so a CI pipeline can fail when permissions change.
"""

__version__ = "0.1.0"

__all__ = [
    "baseline",
    "builder",
    "cli",
    "config",
    "diff",
    "errors",
    "extractors",
    "gate",
    "model",
    "normalize",
    "reporting",
    "runtime",
]

from permission_gate.extractors.android import AndroidExtraction, AndroidExtractor
from permission_gate.extractors.ios import IosExtraction, IosExtractor

__all__ = [
    "AndroidExtraction",
    "AndroidExtractor",
    "IosExtraction",
    "IosExtractor",
]

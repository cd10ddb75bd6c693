"""Gate controller: validate against, or overwrite, the permission baseline.

validate
  extract every artifact, diff each processed platform against the loaded
  baseline. A missing baseline file means first run: the current extraction
  is written as the initial baseline and the gate passes.
update
  extract every artifact and overwrite the baseline unconditionally.

Any extraction failure aborts the run before the baseline is touched.
Temporary files (downloads, unpacked archives) live in scopes owned by the
run and are removed on every exit path.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from permission_gate.baseline import Baseline, BaselineStore
from permission_gate.builder import COLLISION_LOWEST
from permission_gate.diff import VERDICT_PASS, DiffResult, diff_android, diff_ios, verdict
from permission_gate.errors import DriftDetectedError, InputError
from permission_gate.extractors.android import AndroidExtraction, AndroidExtractor
from permission_gate.extractors.ios import IosExtraction, IosExtractor
from permission_gate.model import PLATFORM_ANDROID, PLATFORM_IOS, PLATFORMS, CurrentPermissions
from permission_gate.runtime.artifacts import ArtifactResolver

logger = logging.getLogger(__name__)

MODE_VALIDATE = "validate"
MODE_UPDATE = "update"

Extraction = Union[AndroidExtraction, IosExtraction]


@dataclass
class GateOutcome:
    mode: str
    baseline_path: Path
    current: CurrentPermissions
    baseline: Baseline
    diffs: Dict[str, DiffResult] = field(default_factory=dict)
    extractions: List[Extraction] = field(default_factory=list)
    baseline_created: bool = False
    baseline_written: bool = False

    @property
    def verdict(self) -> str:
        return verdict(self.diffs)

    @property
    def passed(self) -> bool:
        return self.verdict == VERDICT_PASS

    def raise_for_drift(self) -> None:
        if not self.passed:
            raise DriftDetectedError({p: d for p, d in self.diffs.items() if d.has_drift})

    def to_json(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "verdict": self.verdict,
            "baselinePath": str(self.baseline_path),
            "baselineCreated": self.baseline_created,
            "baselineWritten": self.baseline_written,
            "platforms": sorted(self.current.processed),
            "diffs": {p: self.diffs[p].to_json() for p in sorted(self.diffs)},
        }


class GateController:
    def __init__(
        self,
        *,
        store: BaselineStore,
        android_extractor: AndroidExtractor,
        ios_extractor: IosExtractor,
        resolver: Optional[ArtifactResolver] = None,
        collision_policy: str = COLLISION_LOWEST,
    ) -> None:
        self._store = store
        self._android = android_extractor
        self._ios = ios_extractor
        self._resolver = resolver or ArtifactResolver()
        self._collision_policy = collision_policy

    def _extract_one(self, path: Path) -> Extraction:
        suffix = path.suffix.lower()
        if suffix == ".ipa":
            logger.info("processing iOS: %s", path.name)
            return self._ios.extract(path)
        if suffix in {".apk", ".aab"}:
            logger.info("processing Android: %s", path.name)
            return self._android.extract(path)
        raise InputError(f"unsupported file type: {path} (expected .ipa, .apk or .aab)")

    def extract_all(
        self, artifacts: Sequence[str]
    ) -> tuple[CurrentPermissions, List[Extraction]]:
        if not artifacts:
            raise InputError("no artifacts provided (supported: .ipa, .apk, .aab)")

        current = CurrentPermissions()
        extractions: List[Extraction] = []
        with ExitStack() as stack:
            for artifact in artifacts:
                logger.debug("processing artifact: %s", artifact)
                path = self._resolver.resolve(str(artifact), stack)
                extraction = self._extract_one(path)
                extractions.append(extraction)

                # Later artifacts of the same platform replace earlier ones.
                if isinstance(extraction, IosExtraction):
                    current.set_ios(extraction.permission_set())
                    logger.info("found %d iOS permissions", len(current.ios))
                else:
                    current.set_android(
                        extraction.permission_set(collision_policy=self._collision_policy)
                    )
                    logger.info(
                        "found %d Android permissions (%d dynamic)",
                        len(current.android),
                        extraction.dynamic_count,
                    )
        return current, extractions

    def _diff(self, current: CurrentPermissions, baseline: Baseline) -> Dict[str, DiffResult]:
        diffs: Dict[str, DiffResult] = {}
        for platform in PLATFORMS:
            if platform not in current.processed:
                continue
            if platform == PLATFORM_IOS:
                diffs[platform] = diff_ios(current.ios, baseline.ios)
            elif platform == PLATFORM_ANDROID:
                diffs[platform] = diff_android(current.android, baseline.android)
            logger.debug(
                "%s permissions - current: %d, baseline: %d",
                platform,
                len(current.ios if platform == PLATFORM_IOS else current.android),
                len(baseline.ios if platform == PLATFORM_IOS else baseline.android),
            )
        return diffs

    def validate(self, artifacts: Sequence[str]) -> GateOutcome:
        baseline = self._store.load()
        current, extractions = self.extract_all(artifacts)

        outcome = GateOutcome(
            mode=MODE_VALIDATE,
            baseline_path=self._store.path,
            current=current,
            baseline=baseline,
            extractions=extractions,
        )

        if not baseline.exists:
            logger.info("creating initial baseline: %s", self._store.path)
            new_baseline = Baseline.from_current(current)
            self._store.save(new_baseline)
            outcome.baseline = new_baseline
            outcome.baseline_created = True
            outcome.baseline_written = True
            return outcome

        outcome.diffs = self._diff(current, baseline)
        return outcome

    def update(self, artifacts: Sequence[str]) -> GateOutcome:
        current, extractions = self.extract_all(artifacts)
        new_baseline = Baseline.from_current(current)
        self._store.save(new_baseline)
        return GateOutcome(
            mode=MODE_UPDATE,
            baseline_path=self._store.path,
            current=current,
            baseline=new_baseline,
            extractions=extractions,
            baseline_written=True,
        )

"""Human-readable reports for the gate CLIs (written to stdout)."""

from __future__ import annotations

from typing import List

from permission_gate.gate import GateOutcome
from permission_gate.model import PLATFORM_ANDROID, PLATFORM_IOS, PLATFORMS

_PLATFORM_LABELS = {PLATFORM_IOS: "iOS", PLATFORM_ANDROID: "ANDROID"}

UPDATE_COMMAND = "permission-gate-update-baseline"


def _describe(outcome: GateOutcome, platform: str, name: str, *, from_baseline: bool) -> str:
    if platform != PLATFORM_IOS:
        return name
    source = outcome.baseline.ios if from_baseline else outcome.current.ios
    desc = source.get(name)
    return f"{name}: {desc}" if desc is not None else name


def _platform_sections(outcome: GateOutcome) -> List[str]:
    lines: List[str] = []
    for platform in PLATFORMS:
        d = outcome.diffs.get(platform)
        if d is None:
            continue
        label = _PLATFORM_LABELS[platform]
        if d.added:
            lines.append("")
            lines.append(f"NEW {label} PERMISSIONS DETECTED:")
            for name in d.added:
                lines.append(f"  + {_describe(outcome, platform, name, from_baseline=False)}")
        if d.removed:
            lines.append("")
            lines.append(f"REMOVED {label} PERMISSIONS DETECTED:")
            for name in d.removed:
                lines.append(f"  - {_describe(outcome, platform, name, from_baseline=True)}")
    return lines


def _summary(outcome: GateOutcome, attr: str) -> str:
    parts = []
    for platform in PLATFORMS:
        d = outcome.diffs.get(platform)
        names = getattr(d, attr) if d is not None else ()
        if names:
            parts.append(f"{platform}: {', '.join(names)}")
    return "; ".join(parts)


def render_validation_report(outcome: GateOutcome) -> str:
    lines: List[str] = []
    if outcome.baseline_created:
        lines.append(f"No baseline found, created initial baseline: {outcome.baseline_path}")
    else:
        lines.append(f"Loaded baseline: {outcome.baseline_path}")

    lines.extend(_platform_sections(outcome))

    lines.append("")
    lines.append(
        f"Current permissions - iOS: {len(outcome.current.ios)}, "
        f"Android: {len(outcome.current.android)}"
    )

    if outcome.passed:
        lines.append("OK: no permission changes detected")
        return "\n".join(lines)

    lines.append("")
    lines.append("FAIL: permission changes detected")
    added = _summary(outcome, "added")
    removed = _summary(outcome, "removed")
    if added:
        lines.append(f"New permissions: {added}")
    if removed:
        lines.append(f"Removed permissions: {removed}")
    lines.append("")
    lines.append("To approve changes:")
    lines.append("  1. Review the permission changes above")
    lines.append(f"  2. Update the baseline: {UPDATE_COMMAND} <artifacts...>")
    lines.append("  3. Open a PR with a justification for the permission changes")
    return "\n".join(lines)


def render_update_summary(outcome: GateOutcome) -> str:
    lines = [
        f"Updated baseline: {outcome.baseline_path}",
        f"  iOS: {len(outcome.current.ios)} permissions",
        f"  Android: {len(outcome.current.android)} permissions",
        f"  lastUpdated: {outcome.baseline.last_updated}",
        "",
        "Next steps:",
        f"  1. Review: git diff {outcome.baseline_path}",
        "  2. Commit and open a PR with a justification",
    ]
    return "\n".join(lines)

"""Read the enforced test coverage threshold from a package manifest.

Projects configure coverage through their test runner's section of
package.json. The number reported is the lowest threshold the runner
will enforce, as a percentage:

- ``check-coverage: false``                 -> 0 (nothing enforced)
- explicit lines/branches/functions/statements -> the smallest of them
- configured but no explicit thresholds     -> the runner's default
- no runner configuration at all            -> None (unknown)

tap enforces 100% unless told otherwise. c8 only enforces when
``check-coverage`` is switched on and then defaults to 90% lines.
"""

from __future__ import annotations

from typing import Any

from project_status.schemas import Manifest

THRESHOLD_KEYS = ("lines", "branches", "functions", "statements")

TAP_DEFAULT = 100
C8_DEFAULT = 90


def _thresholds(config: dict[str, Any]) -> list[int | float]:
    return [
        config[key]
        for key in THRESHOLD_KEYS
        if isinstance(config.get(key), (int, float)) and not isinstance(config[key], bool)
    ]


def _tap_coverage(config: dict[str, Any]) -> int | float:
    if config.get("check-coverage") is False:
        return 0
    return min(_thresholds(config), default=TAP_DEFAULT)


def _c8_coverage(config: dict[str, Any]) -> int | float:
    if not config.get("check-coverage"):
        return 0
    return min(_thresholds(config), default=C8_DEFAULT)


def get_coverage(manifest: Manifest | None) -> int | float | None:
    """Enforced coverage percentage for ``manifest``, None when unknown."""
    if manifest is None:
        return None
    if manifest.tap is not None:
        return _tap_coverage(manifest.tap)
    if manifest.c8 is not None:
        return _c8_coverage(manifest.c8)

    test_script = (manifest.scripts or {}).get("test")
    if isinstance(test_script, str) and test_script.split()[:1] == ["tap"]:
        return TAP_DEFAULT
    return None

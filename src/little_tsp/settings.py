"""SolverSettings — the four run-time knobs of the solver.

==========================  =======  ==========================================
key                         default  meaning
==========================  =======  ==========================================
``search.max_expansions``   0        stop with SearchCancelled after N expansions
                                     (0 = no limit)
``trace.record_matrices``   1        attach matrix snapshots to trace records
``trace.precision``         6        rounding digits used by ``to_dict()``
``input.allow_zero_costs``  0        accept zero off-diagonal costs
==========================  =======  ==========================================

Usage
-----
>>> from little_tsp.settings import DEFAULT_SETTINGS
>>> lean = DEFAULT_SETTINGS.replace({"trace.record_matrices": 0})
>>> lean.flag("trace.record_matrices")
False
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

__all__ = [
    "SolverSettings",
    "DEFAULT_SETTINGS",
]

# key -> (kind, default); kind is "flag" (0/1) or "count" (integer >= 0)
_SCHEMA: Dict[str, Tuple[str, int]] = {
    "search.max_expansions": ("count", 0),
    "trace.record_matrices": ("flag", 1),
    "trace.precision": ("count", 6),
    "input.allow_zero_costs": ("flag", 0),
}


def _check(key: str, value) -> int:
    if key not in _SCHEMA:
        raise KeyError(
            f"Unknown setting {key!r}; expected one of {sorted(_SCHEMA)}")
    kind = _SCHEMA[key][0]
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"Setting {key!r} must be an integer, got {value!r}")
    if kind == "flag" and value not in (0, 1):
        raise ValueError(f"Setting {key!r} is a 0/1 flag, got {value}")
    if kind == "count" and value < 0:
        raise ValueError(f"Setting {key!r} must be >= 0, got {value}")
    return value


class SolverSettings:
    """Validated, read-only set of solver settings.

    Keys missing from *overrides* take their default.  Unknown keys
    raise ``KeyError``; values of the wrong kind raise ``ValueError``.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, int]] = None,
        *,
        name: str = "custom",
    ):
        values = {key: default for key, (_, default) in _SCHEMA.items()}
        for key, value in (overrides or {}).items():
            values[key] = _check(key, value)
        self._values = values
        self.name = name

    def __getitem__(self, key: str) -> int:
        return self._values[key]

    def flag(self, key: str) -> bool:
        return bool(self._values[key])

    def integer(self, key: str) -> int:
        return self._values[key]

    def replace(
        self,
        overrides: Mapping[str, int],
        *,
        name: Optional[str] = None,
    ) -> "SolverSettings":
        """Return a copy with *overrides* applied on top of these values."""
        merged = dict(self._values)
        merged.update(overrides)
        return SolverSettings(merged, name=name or f"{self.name}+")

    def __repr__(self) -> str:
        changed = {k: v for k, v in self._values.items()
                   if v != _SCHEMA[k][1]}
        return f"SolverSettings({self.name!r}, {changed})"


DEFAULT_SETTINGS = SolverSettings(name="default")

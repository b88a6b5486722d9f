"""Catalog of PDM alarm types."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class AlarmType:
    id: int
    name: str
    explanation: str
    stops_delivery: bool | None  # None: not known

    @staticmethod
    def for_id(alarm_id: int) -> AlarmType | None:
        """Look up a catalog entry.  Unknown ids return None."""
        return ALARM_TYPES.get(alarm_id)


_PDM_ERRORS = [AlarmType(i, f"PDM_ERROR{i}", "PDM error", None) for i in range(10)]

_CATALOG = _PDM_ERRORS + [
    AlarmType(10, "SYSTEM_ERROR10", "system error", False),
    AlarmType(11, "UNKNOWN11", "Unknown alarm type", None),
    AlarmType(12, "SYSTEM_ERROR12", "system error", None),
    AlarmType(13, "HAZ_REMOTE", "clock reset alarm", False),
    AlarmType(14, "HAZ_PUMP_VOL", "empty reservoir", True),
    AlarmType(15, "HAZ_PUMP_AUTO_OFF", "auto-off", True),
    AlarmType(16, "HAZ_PUMP_EXPIRED", "pod expired", True),
    AlarmType(17, "HAZ_PUMP_OCCL", "pump site occluded", True),
    AlarmType(18, "HAZ_PUMP_ACTIVATE", "pod is a lump of coal", False),
    AlarmType(19, "UNKNOWN19", "Unknown alarm type", None),
    AlarmType(20, "UNKNOWN20", "Unknown alarm type", None),
    AlarmType(21, "ADV_KEY", "PDM stuck key detected", False),
    AlarmType(22, "UNKNOWN22", "Unknown alarm type", None),
    AlarmType(23, "ADV_PUMP_VOL", "low reservoir", False),
    AlarmType(24, "ADV_PUMP_AUTO_OFF", "15 minutes to auto-off warning", False),
    AlarmType(25, "ADV_PUMP_SUSPEND", "suspend done", False),
    AlarmType(26, "ADV_PUMP_EXP1", "pod expiration advisory", False),
    AlarmType(27, "ADV_PUMP_EXP2", "pod expiration alert", False),
    AlarmType(28, "SYSTEM_ERROR28", "system error", None),
    AlarmType(37, "EXP_WARNING", "pod expiration advisory", False),
    AlarmType(39, "HAZ_PDM_AUTO_OFF", "auto-off", True),
]

ALARM_TYPES: Mapping[int, AlarmType] = MappingProxyType(
    {a.id: a for a in _CATALOG})

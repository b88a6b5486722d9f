"""Decoded IBF log record types.

A LogRecord is a header shared by every record, an optional HistoryInfo
(HISTORY records only) and a payload holding the fields specific to
the record's subtype.  Amounts stored on the device in hundredths are
exposed as floats in their natural unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, IntFlag
from typing import Union

from .alarms import AlarmType
from .cursor import Version


class LogRecordType(IntEnum):
    HISTORY = 0x03
    PUMP_ALARM = 0x05


class LogRecordError(IntEnum):
    NO_ERR = 0
    GET_EEPROM_ERR = 3
    CRC_ERR = 4
    LOG_INDEX_ERR = 6
    REC_SIZE_ERR = 8


class HistoryType(IntEnum):
    END_MARKER = 0x0000
    DEACTIVATE = 0x0001
    TIME_CHANGE = 0x0002
    BOLUS = 0x0004
    BASAL_RATE = 0x0008
    SUSPEND = 0x0010
    DATE_CHANGE = 0x0020
    SUGGESTED_CALC = 0x0040
    REMOTE_HAZARD_ALARM = 0x0080
    ALARM = 0x0400
    BLOOD_GLUCOSE = 0x0800
    CARB = 0x1000
    TERMINATE_BOLUS = 0x2000
    TERMINATE_BASAL = 0x4000
    ACTIVATE = 0x8000
    RESUME = 0x10000
    DOWNLOAD = 0x20000
    OCCLUSION = 0x40000


class _FlagSet(IntFlag):

    @classmethod
    def from_bits(cls, bits: int):
        """Keep only the named bits of *bits*."""
        value = cls(0)
        for flag in cls:
            if bits & flag:
                value |= flag
        return value

    def names(self) -> list[str]:
        return [f.name for f in type(self) if f in self]


class HistoryFlag(_FlagSet):
    CARRY_OVER = 0x01
    NEW_DAY = 0x02
    IN_PROGRESS = 0x04
    END_DAY = 0x08
    UNCONFIRMED = 0x10
    REVERSE_CORR = 0x0100
    MAX_BOLUS = 0x0200
    ERROR = 0x80000000  # wider than the 16-bit field, never set on the wire


class BloodGlucoseFlag(_FlagSet):
    MANUAL = 0x01
    TEMPERATURE = 0x02
    BELOW_TARGET = 0x04
    ABOVE_TARGET = 0x08
    RANGE_ERROR_LOW = 0x10
    RANGE_ERROR_HIGH = 0x20
    OTHER_ERROR = 0x40


EXTENDED_BOLUS_OFFSET = 0xFFFF


@dataclass(frozen=True)
class RecordHeader:
    log_type: LogRecordType
    log_index: int
    timestamp: datetime | None
    seconds_since_power_up: int
    error: LogRecordError | int
    record_size: int


@dataclass(frozen=True)
class HistoryInfo:
    history_type: HistoryType
    flags: HistoryFlag


# ---------------------------------------------------------------------------
# History payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BasalRate:
    rate_per_hour: float
    duration_minutes: int
    percent: float


@dataclass(frozen=True)
class Bolus:
    units: float
    extended_duration_minutes: int
    calculation_record_offset: int
    immediate_duration_seconds: int

    @property
    def extended(self) -> bool:
        return self.calculation_record_offset == EXTENDED_BOLUS_OFFSET


@dataclass(frozen=True)
class DateChange:
    new_date: datetime | None


@dataclass(frozen=True)
class TimeChange:
    new_time: datetime | None


@dataclass(frozen=True)
class SuggestedCalculation:
    correction_delivered: float
    carb_bolus_delivered: float
    correction_programmed: float
    carb_bolus_programmed: float
    correction_suggested: float
    carb_bolus_suggested: float
    correction_job: int
    meal_job: int
    correction_factor_used: int
    current_bg: int
    target_bg: int
    correction_threshold_bg: int
    carb_grams: int
    ic_ratio_used: int


@dataclass(frozen=True)
class Alarm:
    alarm_time: datetime | None
    alarm_type: int
    file_number: int
    line_number: int
    alarm_error_code: int

    @property
    def alarm(self) -> AlarmType | None:
        """Catalog entry for alarm_type, if known."""
        return AlarmType.for_id(self.alarm_type)


@dataclass(frozen=True)
class RemoteHazardAlarm(Alarm):
    pass


@dataclass(frozen=True)
class BloodGlucose:
    error_code: int
    bg_reading: int
    user_tag1: str
    user_tag2: str
    bg_flags: BloodGlucoseFlag


@dataclass(frozen=True)
class Carb:
    carbs: int
    was_preset: int
    preset_type: int


@dataclass(frozen=True)
class TerminateBolus:
    insulin_left: float
    time_left_minutes: int


@dataclass(frozen=True)
class TerminateBasal:
    time_left_minutes: int


@dataclass(frozen=True)
class Activate:
    lot_number: int
    serial_number: int
    pod_version: Version | None
    interlock_version: Version | None


# ---------------------------------------------------------------------------
# Pump alarm payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PumpAlarmDetails:
    alarm_timestamp: datetime | None
    alarm_type_id: int
    alarm_type: AlarmType | None
    alarm_error_code: int
    lot_number: int
    sequence_number: int
    processor_version: Version | None
    interlock_version: Version | None


Payload = Union[
    BasalRate, Bolus, DateChange, TimeChange, SuggestedCalculation,
    Alarm, RemoteHazardAlarm, BloodGlucose, Carb, TerminateBolus,
    TerminateBasal, Activate, PumpAlarmDetails,
]


@dataclass(frozen=True)
class LogRecord:
    header: RecordHeader
    history: HistoryInfo | None = None
    payload: Payload | None = None

    @property
    def log_type(self) -> LogRecordType:
        return self.header.log_type

    @property
    def kind(self) -> str:
        """Subtype name for HISTORY records, otherwise the outer type name."""
        if self.history is not None:
            return self.history.history_type.name
        return self.header.log_type.name

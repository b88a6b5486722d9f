"""ibflog - Decoder for PDM insulin pump IBF log files."""

from .errors import DecodeError, ErrorKind
from .cursor import ByteCursor, Version
from .framing import RawFrame, FrameResult, read_frame, read_frame_at, iter_frames
from .alarms import AlarmType, ALARM_TYPES
from .records import (
    LogRecord, RecordHeader, HistoryInfo,
    LogRecordType, LogRecordError, HistoryType, HistoryFlag, BloodGlucoseFlag,
    BasalRate, Bolus, DateChange, TimeChange, SuggestedCalculation,
    Alarm, RemoteHazardAlarm, BloodGlucose, Carb, TerminateBolus,
    TerminateBasal, Activate, PumpAlarmDetails,
)
from .decoder import RecordResult, decode_record, iter_records, LogDecoder
from .storage import LogReader

__all__ = [
    "DecodeError", "ErrorKind",
    "ByteCursor", "Version",
    "RawFrame", "FrameResult", "read_frame", "read_frame_at", "iter_frames",
    "AlarmType", "ALARM_TYPES",
    "LogRecord", "RecordHeader", "HistoryInfo",
    "LogRecordType", "LogRecordError", "HistoryType", "HistoryFlag",
    "BloodGlucoseFlag",
    "BasalRate", "Bolus", "DateChange", "TimeChange", "SuggestedCalculation",
    "Alarm", "RemoteHazardAlarm", "BloodGlucose", "Carb", "TerminateBolus",
    "TerminateBasal", "Activate", "PumpAlarmDetails",
    "RecordResult", "decode_record", "iter_records", "LogDecoder",
    "LogReader",
]

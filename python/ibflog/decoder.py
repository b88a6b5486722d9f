"""Record decoding and a stateful stream decoder for IBF logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Callable, Iterator

from .alarms import AlarmType
from .cursor import ByteCursor
from .errors import DecodeError, ErrorKind
from .framing import RawFrame, iter_frames, read_frame_at
from .records import (
    Activate, Alarm, BasalRate, BloodGlucose, BloodGlucoseFlag, Bolus, Carb,
    DateChange, HistoryFlag, HistoryInfo, HistoryType, LogRecord,
    LogRecordError, LogRecordType, Payload, PumpAlarmDetails,
    RecordHeader, RemoteHazardAlarm, SuggestedCalculation, TerminateBasal,
    TerminateBolus, TimeChange,
)

logger = logging.getLogger(__name__)

# Smallest frame accepted by decode_record().  The full common header
# (tag, index, size, error, date, reserved, uptime) is 21 bytes; a frame
# between the two sizes fails with OUT_OF_BOUNDS instead.
MIN_RECORD_SIZE = 18

USER_TAG_WIDTH = 24


@dataclass
class RecordResult:
    """Outcome of decoding one frame: exactly one of record/error is set."""
    record: LogRecord | None = None
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> LogRecord:
        """Return the record or raise the carried DecodeError."""
        if self.error is not None:
            raise self.error
        assert self.record is not None
        return self.record


def _hundredths(value: int) -> float:
    return value / 100


# ---------------------------------------------------------------------------
# HISTORY payloads
# ---------------------------------------------------------------------------

def _read_basal_rate(cur: ByteCursor) -> BasalRate:
    return BasalRate(
        rate_per_hour=_hundredths(cur.uint32_le()),
        duration_minutes=cur.uint16_le(),
        percent=_hundredths(cur.uint16_le()),
    )


def _read_bolus(cur: ByteCursor) -> Bolus:
    return Bolus(
        units=_hundredths(cur.uint32_le()),
        extended_duration_minutes=cur.uint16_le(),
        calculation_record_offset=cur.uint16_le(),
        immediate_duration_seconds=cur.uint16_le(),
    )


def _read_date_change(cur: ByteCursor) -> DateChange:
    return DateChange(cur.next_date())


def _read_time_change(cur: ByteCursor) -> TimeChange:
    return TimeChange(cur.next_date())


def _read_suggested_calc(cur: ByteCursor) -> SuggestedCalculation:
    return SuggestedCalculation(
        correction_delivered=_hundredths(cur.uint32_le()),
        carb_bolus_delivered=_hundredths(cur.uint32_le()),
        correction_programmed=_hundredths(cur.uint32_le()),
        carb_bolus_programmed=_hundredths(cur.uint32_le()),
        correction_suggested=_hundredths(cur.int32_le()),
        carb_bolus_suggested=_hundredths(cur.uint32_le()),
        correction_job=cur.uint32_le(),
        meal_job=cur.uint32_le(),
        correction_factor_used=cur.uint16_le(),
        current_bg=cur.uint16_le(),
        target_bg=cur.uint16_le(),
        correction_threshold_bg=cur.uint16_le(),
        carb_grams=cur.int16_le(),
        ic_ratio_used=cur.uint16_le(),
    )


def _read_alarm_fields(cur: ByteCursor, cls: type[Alarm]) -> Alarm:
    alarm_time = cur.next_date()
    cur.skip(1)
    return cls(
        alarm_time=alarm_time,
        alarm_type=cur.uint16_le(),
        file_number=cur.uint16_le(),
        line_number=cur.uint16_le(),
        alarm_error_code=cur.uint16_le(),
    )


def _read_alarm(cur: ByteCursor) -> Alarm:
    return _read_alarm_fields(cur, Alarm)


def _read_remote_hazard_alarm(cur: ByteCursor) -> Alarm:
    return _read_alarm_fields(cur, RemoteHazardAlarm)


def _read_blood_glucose(cur: ByteCursor) -> BloodGlucose:
    return BloodGlucose(
        error_code=cur.uint32_le(),
        bg_reading=cur.uint16_le(),
        user_tag1=cur.next_string(USER_TAG_WIDTH),
        user_tag2=cur.next_string(USER_TAG_WIDTH),
        bg_flags=BloodGlucoseFlag.from_bits(cur.uint8()),
    )


def _read_carb(cur: ByteCursor) -> Carb:
    return Carb(
        carbs=cur.uint16_le(),
        was_preset=cur.int8(),
        preset_type=cur.int8(),
    )


def _read_terminate_bolus(cur: ByteCursor) -> TerminateBolus:
    return TerminateBolus(
        insulin_left=_hundredths(cur.uint32_le()),
        time_left_minutes=cur.uint16_le(),
    )


def _read_terminate_basal(cur: ByteCursor) -> TerminateBasal:
    return TerminateBasal(time_left_minutes=cur.uint16_le())


def _read_activate(cur: ByteCursor) -> Activate:
    return Activate(
        lot_number=cur.uint16_le(),
        serial_number=cur.uint16_le(),
        pod_version=cur.next_version(),
        interlock_version=cur.next_version(),
    )


# Subtypes missing here carry no payload.
_HISTORY_READERS: dict[HistoryType, Callable[[ByteCursor], Payload]] = {
    HistoryType.BASAL_RATE: _read_basal_rate,
    HistoryType.BOLUS: _read_bolus,
    HistoryType.DATE_CHANGE: _read_date_change,
    HistoryType.TIME_CHANGE: _read_time_change,
    HistoryType.SUGGESTED_CALC: _read_suggested_calc,
    HistoryType.REMOTE_HAZARD_ALARM: _read_remote_hazard_alarm,
    HistoryType.ALARM: _read_alarm,
    HistoryType.BLOOD_GLUCOSE: _read_blood_glucose,
    HistoryType.CARB: _read_carb,
    HistoryType.TERMINATE_BOLUS: _read_terminate_bolus,
    HistoryType.TERMINATE_BASAL: _read_terminate_basal,
    HistoryType.ACTIVATE: _read_activate,
}


def _decode_history(cur: ByteCursor, header: RecordHeader) -> RecordResult:
    raw_type = cur.uint32_le()
    try:
        history_type = HistoryType(raw_type)
    except ValueError:
        return RecordResult(error=DecodeError(
            ErrorKind.UNKNOWN_HISTORY_TYPE, str(raw_type)))

    flags = HistoryFlag.from_bits(cur.uint16_le())
    cur.skip(2)

    reader = _HISTORY_READERS.get(history_type)
    payload = reader(cur) if reader is not None else None

    return RecordResult(record=LogRecord(
        header, HistoryInfo(history_type, flags), payload))


# ---------------------------------------------------------------------------
# PUMP_ALARM payload
# ---------------------------------------------------------------------------

def _decode_pump_alarm(cur: ByteCursor, header: RecordHeader) -> RecordResult:
    alarm_timestamp = cur.next_date()
    cur.skip(1)
    alarm_type_id = cur.uint8()
    cur.skip(1)
    alarm_error_code = cur.uint8()

    details = PumpAlarmDetails(
        alarm_timestamp=alarm_timestamp,
        alarm_type_id=alarm_type_id,
        alarm_type=AlarmType.for_id(alarm_type_id),
        alarm_error_code=alarm_error_code,
        lot_number=cur.uint32_le(),
        sequence_number=cur.uint32_le(),
        processor_version=cur.next_version(),
        interlock_version=cur.next_version(),
    )
    return RecordResult(record=LogRecord(header, None, details))


# ---------------------------------------------------------------------------
# Outer dispatch
# ---------------------------------------------------------------------------

def _read_header(cur: ByteCursor, log_type: LogRecordType,
                 frame_size: int) -> RecordHeader:
    log_index = cur.int32_be()
    record_size = cur.uint16_be()
    raw_error = cur.uint16_be()
    timestamp = cur.next_date()
    cur.skip(1)
    seconds_since_power_up = cur.uint32_le()

    if record_size != frame_size:
        logger.debug("record %d: header size %d, frame size %d",
                     log_index, record_size, frame_size)

    try:
        error: LogRecordError | int = LogRecordError(raw_error)
    except ValueError:
        error = raw_error

    return RecordHeader(
        log_type=log_type,
        log_index=log_index,
        timestamp=timestamp,
        seconds_since_power_up=seconds_since_power_up,
        error=error,
        record_size=record_size,
    )


def decode_record(frame: RawFrame | bytes,
                  tz: tzinfo | None = None) -> RecordResult:
    """Decode one framed payload into a LogRecord.

    Never raises: every failure comes back as RecordResult.error.  Dates
    are naive device-local datetimes unless *tz* is given.
    """
    if isinstance(frame, RawFrame):
        frame_size = frame.record_size
        data = frame.payload
    else:
        data = bytes(frame)
        frame_size = len(data) + 2

    cur = ByteCursor(data, tz=tz)

    if cur.remaining() < MIN_RECORD_SIZE:
        return RecordResult(error=DecodeError(
            ErrorKind.INSUFFICIENT_DATA, str(cur.remaining())))

    raw_type = cur.int8()
    try:
        log_type = LogRecordType(raw_type)
    except ValueError:
        return RecordResult(error=DecodeError(
            ErrorKind.UNKNOWN_LOG_TYPE, str(raw_type)))

    try:
        header = _read_header(cur, log_type, frame_size)
        if log_type == LogRecordType.HISTORY:
            return _decode_history(cur, header)
        if log_type == LogRecordType.PUMP_ALARM:
            return _decode_pump_alarm(cur, header)
    except DecodeError as e:
        return RecordResult(error=e)

    return RecordResult(error=DecodeError(
        ErrorKind.INTERNAL, f"unhandled log record type {log_type!r}"))


def iter_records(buffer: bytes, skip: int = 0, tz: tzinfo | None = None,
                 checksum_bits: int = 32) -> Iterator[RecordResult]:
    """Frame and decode every complete record in *buffer*.

    The first *skip* frames are framed (and checksummed) but not decoded.
    A fatal framing error is yielded as the last result.
    """
    for i, result in enumerate(iter_frames(buffer, checksum_bits)):
        if result.frame is None:
            yield RecordResult(error=result.error)
            return
        if i < skip:
            continue
        yield decode_record(result.frame, tz)


# ---------------------------------------------------------------------------
# Stream decoder
# ---------------------------------------------------------------------------

class LogDecoder:
    """Stateful stream decoder that reassembles frames from a byte stream.

    Bytes may arrive in arbitrary chunks; partial frames stay buffered
    until the rest arrives.  A fatal framing error ends the stream: the
    buffer is dropped and further input is ignored until reset().
    """

    def __init__(self, tz: tzinfo | None = None, checksum_bits: int = 32):
        self.tz = tz
        self.checksum_bits = checksum_bits
        self.frames_read: int = 0
        self.error: DecodeError | None = None
        self._buf = bytearray()

    @property
    def buffered(self) -> int:
        return len(self._buf)

    def feed(self, data: bytes) -> list[RecordResult]:
        """Feed raw bytes, return results for any complete frames."""
        if self.error is not None:
            logger.warning("ignoring %d bytes after fatal error: %s",
                           len(data), self.error)
            return []

        self._buf.extend(data)
        results: list[RecordResult] = []
        offset = 0

        while True:
            frame, error, end = read_frame_at(self._buf, offset,
                                              self.checksum_bits)
            if error is not None:
                self.error = error
                self._buf.clear()
                results.append(RecordResult(error=error))
                return results
            if frame is None:
                break

            offset = end
            self.frames_read += 1
            results.append(decode_record(frame, self.tz))

        del self._buf[:offset]
        return results

    def reset(self):
        """Clear internal buffer and any fatal error."""
        self._buf.clear()
        self.error = None
        self.frames_read = 0

"""
Record normalization for the alert engine.

Status and remarks are free text typed by operators, so they are compared
case- and whitespace-insensitively. Everything else is copied untouched.
"""
from typing import Any, Iterable, List, Mapping, Union

from jmcc_dashboard.schemas.journey import JourneyRecord, NormalizedRecord

RecordLike = Union[JourneyRecord, Mapping[str, Any]]

def normalize_text(value: Any) -> str:
    """Lowercase and trim a free-text field; None becomes the empty string."""
    if value is None:
        return ""
    return str(value).strip().lower()

def _as_record(record: RecordLike) -> JourneyRecord:
    if isinstance(record, JourneyRecord):
        return record
    # Field names must be strings for the model
    return JourneyRecord.model_validate({str(key): value for key, value in dict(record).items()})

def normalize_record(record: RecordLike) -> NormalizedRecord:
    """Normalize a single record."""
    source = _as_record(record)
    data = source.model_dump()
    data["jp_status"] = normalize_text(source.jp_status)
    data["remarks"] = normalize_text(source.remarks)
    return NormalizedRecord.model_validate(data)

def normalize(records: Iterable[RecordLike]) -> List[NormalizedRecord]:
    """
    Normalize a snapshot of journey records.

    Args:
        records: JourneyRecord instances or raw row mappings

    Returns:
        One NormalizedRecord per input, in the same order
    """
    return [normalize_record(record) for record in records]

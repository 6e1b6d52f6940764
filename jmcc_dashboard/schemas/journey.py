"""
Journey plan schemas for the JMCC dashboard.

This module defines the Pydantic models for rows of the jmcc_list table.
Attribute names follow the database columns; aliases follow the keys the
dashboard frontend sends and expects.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

# Database column -> API key
COLUMN_ALIASES = {
    "tracker": "tracker",
    "sjm": "sjm",
    "journey_plan_no": "journey_Plane_No",
    "journey_plan_date": "journey_Plane_Date",
    "scheduled_vehicle": "scheduled_Vehicle",
    "carrier": "carrier",
    "jp_status": "jp_Status",
    "next_arrival_date": "next_Arrival_Date",
    "next_point": "next_Point",
    "ivms_check_date": "ivms_Check_Date",
    "ivms_point": "ivms_Point",
    "destination": "destination",
    "offload_point": "offload_Point",
    "driver_name": "driver_Name",
    "remarks": "remarks",
    "accommodation": "accommodation",
    "jm": "jm",
    "item_type": "item_Type",
}

RECORD_COLUMNS = list(COLUMN_ALIASES.keys())


class JourneyRecordIn(BaseModel):
    """Record body accepted by the create and update endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    tracker: Optional[str] = None
    sjm: Optional[str] = None
    journey_plan_no: Optional[str] = Field(None, alias="journey_Plane_No")
    journey_plan_date: Optional[date] = Field(None, alias="journey_Plane_Date")
    scheduled_vehicle: Optional[str] = Field(None, alias="scheduled_Vehicle")
    carrier: Optional[str] = None
    jp_status: Optional[str] = Field(None, alias="jp_Status")
    next_arrival_date: Optional[datetime] = Field(None, alias="next_Arrival_Date")
    next_point: Optional[str] = Field(None, alias="next_Point")
    ivms_check_date: Optional[datetime] = Field(None, alias="ivms_Check_Date")
    ivms_point: Optional[str] = Field(None, alias="ivms_Point")
    destination: Optional[str] = None
    offload_point: Optional[str] = Field(None, alias="offload_Point")
    driver_name: Optional[str] = Field(None, alias="driver_Name")
    remarks: Optional[str] = None
    accommodation: Optional[str] = None
    jm: Optional[str] = None
    item_type: Optional[str] = Field(None, alias="item_Type")

    def to_columns(self) -> Dict[str, Any]:
        """Return every column keyed by its database name, missing values as None."""
        return self.model_dump(by_alias=False)


class JourneyRecord(BaseModel):
    """
    A jmcc_list row as seen by the alert engine.

    Every field accepts any value so a snapshot row can always be loaded;
    columns the engine does not look at travel along as extra fields.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    journey_plan_no: Any = Field(None, alias="journey_Plane_No")
    sjm: Any = None
    jp_status: Any = Field(None, alias="jp_Status")
    remarks: Any = None
    ivms_check_date: Any = Field(None, alias="ivms_Check_Date")


class NormalizedRecord(JourneyRecord):
    """JourneyRecord with status and remarks lowercased and trimmed."""
    jp_status: str = Field("", alias="jp_Status")
    remarks: str = ""


def to_api_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Rename database columns to the keys the dashboard frontend uses."""
    return {COLUMN_ALIASES.get(key, key): value for key, value in row.items()}

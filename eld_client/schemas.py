"""
Pydantic schemas for backend payloads and the client domain model.
"""
from datetime import date as Date, datetime
from typing import Literal, Optional, Tuple, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


# ============ Auth ============

class RegisterRequest(BaseModel):
    """Request to create a new account."""
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)
    email: EmailStr


class LoginRequest(BaseModel):
    """Request for a new token pair."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenPair(BaseModel):
    """Response from the login endpoint."""
    access: str
    refresh: str


class AccessToken(BaseModel):
    """Response from the refresh endpoint."""
    access: str


# ============ Trips ============

class TripCreate(BaseModel):
    """Request to create a trip. Sent to the backend in snake_case."""
    current_location: str = Field(..., min_length=1, max_length=255)
    pickup_location: str = Field(..., min_length=1, max_length=255)
    dropoff_location: str = Field(..., min_length=1, max_length=255)
    current_cycle_hours: float = Field(0, ge=0, le=70)


class Trip(BaseModel):
    """Trip record as returned by the backend."""
    model_config = ConfigDict(extra="allow")

    id: int
    current_location: str = ""
    pickup_location: str = ""
    dropoff_location: str = ""
    current_cycle_hours: float = Field(
        0,
        validation_alias=AliasChoices("current_cycle_hours", "cycle_hours_used"),
    )


class RawStop(BaseModel):
    """Rest or fuel stop as planned by the backend."""
    model_config = ConfigDict(extra="ignore")

    type: str
    location: str
    planned_arrival: Optional[datetime] = None
    duration: Optional[float] = Field(None, description="Stop length in hours")


class RawRoute(BaseModel):
    """Route summary as planned by the backend."""
    model_config = ConfigDict(extra="ignore")

    distance: float = Field(..., description="Already in display units (miles)")
    duration: float = Field(..., description="Seconds")


# ============ Route (domain) ============

PointType = Literal["pickup", "dropoff", "rest", "fuel"]


class RoutePoint(BaseModel):
    """A single point along the planned route."""
    type: PointType
    location: str
    coordinates: Tuple[float, float] = (0.0, 0.0)
    time: datetime
    duration: Optional[float] = Field(None, description="Minutes")


class RouteData(BaseModel):
    """Ordered route points with trip totals."""
    points: list[RoutePoint] = Field(..., min_length=2)
    total_distance: float
    total_duration: int = Field(..., description="Whole hours")


# ============ Logs (domain) ============

class LogEntry(BaseModel):
    """One row of a daily log sheet."""
    model_config = ConfigDict(extra="ignore")

    start: str = ""
    end: str = ""
    status: str = ""
    location: str = ""
    notes: str = ""


class DutyStatusChange(BaseModel):
    """Detailed duty status change record within a log sheet."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    status: str
    status_display: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: str = ""
    odometer: Optional[float] = None

    @property
    def label(self) -> str:
        return self.status_display or self.status


class LogSheet(BaseModel):
    """
    One calendar day of duty status records.

    The backend mixes camelCase summary fields with snake_case header
    fields; both spellings are accepted for every field.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    trip: Optional[int] = None
    date: Optional[Date] = None
    entries: list[LogEntry] = Field(default_factory=list)
    duty_status_changes: list[DutyStatusChange] = Field(
        default_factory=list,
        validation_alias=AliasChoices("duty_status_changes", "dutyStatusChanges"),
    )

    # Summary hours
    driving_hours: float = Field(0, validation_alias=AliasChoices("drivingHours", "driving_hours"))
    on_duty_hours: float = Field(0, validation_alias=AliasChoices("onDutyHours", "on_duty_hours"))
    off_duty_hours: float = Field(0, validation_alias=AliasChoices("offDutyHours", "off_duty_hours"))
    sleeper_hours: float = Field(0, validation_alias=AliasChoices("sleeperHours", "sleeper_hours"))
    cycle_remaining: float = Field(0, validation_alias=AliasChoices("cycleRemaining", "cycle_remaining"))

    # Header
    carrier_name: Optional[str] = Field(None, validation_alias=AliasChoices("carrier_name", "carrierName"))
    carrier_address: Optional[str] = Field(None, validation_alias=AliasChoices("carrier_address", "carrierAddress"))
    starting_odometer: Optional[float] = Field(
        None, validation_alias=AliasChoices("starting_odometer", "startingOdometer")
    )
    ending_odometer: Optional[float] = Field(
        None, validation_alias=AliasChoices("ending_odometer", "endingOdometer")
    )
    total_miles: Optional[float] = Field(None, validation_alias=AliasChoices("total_miles", "totalMiles"))
    driver_signature: Optional[str] = Field(
        None, validation_alias=AliasChoices("driver_signature", "driverSignature")
    )
    notes: Optional[str] = None


class LogAsset(BaseModel):
    """Rendered grid image or PDF for one log sheet."""
    log_id: Union[int, str]
    content: bytes
    content_type: str = "application/octet-stream"

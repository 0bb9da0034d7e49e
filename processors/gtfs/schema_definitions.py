#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Defines Pydantic models for the GTFS (General Transit Feed Specification)
tables that take part in entity extraction.

This module provides a base model `GTFSBaseModel` with common configurations
and specific Pydantic models for each GTFS file type that carries or
references an entity id (e.g., Agency, Stop, Route). Rows streamed by the
feed reader are parsed into these models before they reach the edge rules.

The main schema dictionary `GTFS_FILE_SCHEMAS` maps GTFS filenames to their
corresponding Pydantic model and the column holding the entity id.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    confloat,
    conint,
    field_validator,
)

# Required identifier: never blank after whitespace stripping.
EntityId = Annotated[str, StringConstraints(min_length=1)]
GtfsDate = Annotated[str, StringConstraints(pattern=r"^[0-9]{8}$")]
GtfsTime = Annotated[
    str, StringConstraints(pattern=r"^[0-9]{1,3}:[0-5][0-9]:[0-5][0-9]$")
]


# --- Pydantic Model Configuration ---
class GTFSBaseModel(BaseModel):
    """
    Base Pydantic model for all GTFS entities.

    Includes common configuration options:
    - `extra = "ignore"`: Ignores extra fields not defined in the model.
    - `str_strip_whitespace = True`: Strips leading/trailing whitespace from
                                     string fields.
    - `frozen = True`: Entities are immutable once streamed.
    """
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        frozen=True,
    )


# --- GTFS File Specific Models ---

class Agency(GTFSBaseModel):
    """
    Represents an agency from `agency.txt`.

    Attributes:
        agency_id: Conditionally required. Uniquely identifies a transit agency.
                   May be blank when the feed contains a single agency.
        agency_name: Required. Full name of the transit agency.
        agency_url: Required. URL of the transit agency.
        agency_timezone: Required. Timezone where the agency is located.
        agency_lang: Optional. Primary language used by this agency.
        agency_phone: Optional. Voice telephone number for the agency.
        agency_fare_url: Optional. URL for purchasing fares online.
        agency_email: Optional. Email address for contacting the agency.
    """
    agency_id: Optional[str] = None
    agency_name: EntityId
    agency_url: Annotated[str, StringConstraints(pattern=r"^https?://.+")]
    agency_timezone: EntityId
    agency_lang: Optional[str] = None
    agency_phone: Optional[str] = None
    agency_fare_url: Optional[str] = None
    agency_email: Optional[str] = None


class Stop(GTFSBaseModel):
    """
    Represents a stop, station, entrance, generic node or boarding area
    from `stops.txt`.

    Attributes:
        stop_id: Required. Uniquely identifies a location.
        stop_code: Optional. Short text or number identifying the stop.
        stop_name: Optional. Name of the location.
        stop_lat: Conditionally required. Latitude (WGS84). May be blank for
                  generic nodes and boarding areas.
        stop_lon: Conditionally required. Longitude (WGS84).
        zone_id: Optional. Fare zone for the stop.
        location_type: Optional. 0 or blank: Stop/Platform, 1: Station,
                       2: Entrance/Exit, 3: Generic Node, 4: Boarding Area.
        parent_station: Optional. The `stop_id` of the parent location.
        stop_timezone: Optional. Timezone of the stop.
        wheelchair_boarding: Optional. Wheelchair accessibility.
        level_id: Optional. Level of the location, from `levels.txt`.
        platform_code: Optional. Platform identifier for the stop.
    """
    stop_id: EntityId
    stop_code: Optional[str] = None
    stop_name: Optional[str] = None
    stop_desc: Optional[str] = None
    stop_lat: Optional[confloat(ge=-90, le=90)] = None
    stop_lon: Optional[confloat(ge=-180, le=180)] = None
    zone_id: Optional[str] = None
    stop_url: Optional[str] = None
    location_type: Optional[conint(ge=0, le=4)] = Field(0)
    parent_station: Optional[str] = None
    stop_timezone: Optional[str] = None
    wheelchair_boarding: Optional[conint(ge=0, le=2)] = None
    level_id: Optional[str] = None
    platform_code: Optional[str] = None


class Route(GTFSBaseModel):
    """
    Represents a route from `routes.txt`.

    Attributes:
        route_id: Required. Uniquely identifies a route.
        agency_id: Conditionally required. Agency for the route. A blank
                   value refers to the feed's only agency.
        route_short_name: Optional. Short name for the route (e.g., "10").
        route_long_name: Optional. Long name for the route.
        route_type: Required. Basic (0-12) or extended (100+) route type.
        route_color: Optional. Route color in hex format.
        route_text_color: Optional. Route text color in hex format.
        route_sort_order: Optional. Order for displaying routes.
    """
    route_id: EntityId
    agency_id: Optional[str] = None
    route_short_name: Optional[str] = None
    route_long_name: Optional[str] = None
    route_desc: Optional[str] = None
    route_type: conint(ge=0)
    route_url: Optional[str] = None
    route_color: Optional[
        Annotated[str, StringConstraints(pattern=r"^[0-9a-fA-F]{6}$")]
    ] = None
    route_text_color: Optional[
        Annotated[str, StringConstraints(pattern=r"^[0-9a-fA-F]{6}$")]
    ] = None
    route_sort_order: Optional[conint(ge=0)] = None


class Trip(GTFSBaseModel):
    """
    Represents a trip from `trips.txt`.

    Attributes:
        route_id: Required. ID of the route this trip belongs to.
        service_id: Required. ID of the service pattern for this trip.
        trip_id: Required. Uniquely identifies a trip.
        trip_headsign: Optional. Text that appears on signage for the trip.
        direction_id: Optional. Direction of travel (0 or 1).
        block_id: Optional. ID of the block of trips this trip belongs to.
        shape_id: Optional. ID of the shape for this trip.
    """
    route_id: EntityId
    service_id: EntityId
    trip_id: EntityId
    trip_headsign: Optional[str] = None
    trip_short_name: Optional[str] = None
    direction_id: Optional[conint(ge=0, le=1)] = None
    block_id: Optional[str] = None
    shape_id: Optional[str] = None
    wheelchair_accessible: Optional[conint(ge=0, le=2)] = None
    bikes_allowed: Optional[conint(ge=0, le=2)] = None


class StopTime(GTFSBaseModel):
    """
    Represents a stop time event from `stop_times.txt`.

    Stop times are never graph nodes; they only link a trip to the stops it
    visits.
    """
    trip_id: EntityId
    arrival_time: Optional[GtfsTime] = None
    departure_time: Optional[GtfsTime] = None
    stop_id: EntityId
    stop_sequence: conint(ge=0)
    stop_headsign: Optional[str] = None
    pickup_type: Optional[conint(ge=0, le=3)] = None
    drop_off_type: Optional[conint(ge=0, le=3)] = None
    shape_dist_traveled: Optional[confloat(ge=0)] = None
    timepoint: Optional[conint(ge=0, le=1)] = None


class Calendar(GTFSBaseModel):
    """
    Represents a service availability pattern from `calendar.txt`.

    Attributes:
        service_id: Required. Uniquely identifies a set of dates when service
                    is available for one or more routes.
        monday .. sunday: Required. 1 if service runs on that weekday.
        start_date: Required. Start date for the service (YYYYMMDD).
        end_date: Required. End date for the service (YYYYMMDD).
    """
    service_id: EntityId
    monday: conint(ge=0, le=1)
    tuesday: conint(ge=0, le=1)
    wednesday: conint(ge=0, le=1)
    thursday: conint(ge=0, le=1)
    friday: conint(ge=0, le=1)
    saturday: conint(ge=0, le=1)
    sunday: conint(ge=0, le=1)
    start_date: GtfsDate
    end_date: GtfsDate

    @field_validator("start_date", "end_date")
    @classmethod
    def check_date_format(cls, v: str) -> str:
        """Validate that date strings are in YYYYMMDD format."""
        try:
            datetime.strptime(v, "%Y%m%d").date()
        except ValueError as e:
            raise ValueError(f"Date {v} is not a valid YYYYMMDD date.") from e
        return v


class CalendarDate(GTFSBaseModel):
    """
    Represents exceptions to service availability from `calendar_dates.txt`.

    Attributes:
        service_id: Required. ID of the service affected by this exception.
        date: Required. Date of the exception (YYYYMMDD).
        exception_type: Required. 1: Service added, 2: Service removed.
    """
    service_id: EntityId
    date: GtfsDate
    exception_type: conint(ge=1, le=2)


class ShapePoint(GTFSBaseModel):
    """Represents a point in a vehicle's path from `shapes.txt`."""
    shape_id: EntityId
    shape_pt_lat: confloat(ge=-90, le=90)
    shape_pt_lon: confloat(ge=-180, le=180)
    shape_pt_sequence: conint(ge=0)
    shape_dist_traveled: Optional[confloat(ge=0)] = None


class Level(GTFSBaseModel):
    """Represents a level within a station from `levels.txt`."""
    level_id: EntityId
    level_index: float
    level_name: Optional[str] = None


class FareAttribute(GTFSBaseModel):
    """
    Represents a fare class from `fare_attributes.txt`.

    Attributes:
        fare_id: Required. Uniquely identifies a fare class.
        price: Required. Fare price.
        currency_type: Required. ISO 4217 currency code.
        payment_method: Required. 0: paid on board, 1: paid before boarding.
        transfers: Conditionally required. Blank means unlimited transfers.
        agency_id: Conditionally required. Agency the fare applies to.
        transfer_duration: Optional. Seconds a transfer remains valid.
    """
    fare_id: EntityId
    price: confloat(ge=0)
    currency_type: EntityId
    payment_method: conint(ge=0, le=1)
    transfers: Optional[conint(ge=0, le=2)] = None
    agency_id: Optional[str] = None
    transfer_duration: Optional[conint(ge=0)] = None


class FareRule(GTFSBaseModel):
    """
    Represents a fare rule from `fare_rules.txt`.

    The zone columns refer to `zone_id` values of stops, not to a table of
    their own.
    """
    fare_id: EntityId
    route_id: Optional[str] = None
    origin_id: Optional[str] = None
    destination_id: Optional[str] = None
    contains_id: Optional[str] = None


# --- Main Schema Dictionary ---
# Maps GTFS filenames to their Pydantic model and the column holding the
# entity id. Files without an "id_col" have no identity of their own.
GTFS_FILE_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "agency.txt": {"model": Agency, "id_col": "agency_id"},
    "stops.txt": {"model": Stop, "id_col": "stop_id"},
    "routes.txt": {"model": Route, "id_col": "route_id"},
    "trips.txt": {"model": Trip, "id_col": "trip_id"},
    "stop_times.txt": {"model": StopTime},
    "calendar.txt": {"model": Calendar, "id_col": "service_id"},
    "calendar_dates.txt": {"model": CalendarDate},
    "shapes.txt": {"model": ShapePoint, "id_col": "shape_id"},
    "levels.txt": {"model": Level, "id_col": "level_id"},
    "fare_attributes.txt": {"model": FareAttribute, "id_col": "fare_id"},
    "fare_rules.txt": {"model": FareRule},
}

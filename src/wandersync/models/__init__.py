"""Data models for trip documents and auxiliary lookups."""

from wandersync.models._base import TripBaseModel, TripEnum, parse_iso_timestamp, utc_now_iso
from wandersync.models.cache import CacheEntry
from wandersync.models.trip import (
    Accommodation,
    Attachment,
    EventCategory,
    Expense,
    FlightInfo,
    HighlightLabel,
    ItineraryEvent,
    OtherTransport,
    TripDocument,
)
from wandersync.models.weather import WeatherReport

__all__ = [
    "Accommodation",
    "Attachment",
    "CacheEntry",
    "EventCategory",
    "Expense",
    "FlightInfo",
    "HighlightLabel",
    "ItineraryEvent",
    "OtherTransport",
    "TripBaseModel",
    "TripDocument",
    "TripEnum",
    "WeatherReport",
    "parse_iso_timestamp",
    "utc_now_iso",
]

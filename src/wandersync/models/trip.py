"""Trip document model.

The :class:`TripDocument` is the single unit of synchronization: the whole
document is stored, pushed and compared; no sub-entity syncs on its own.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError

from wandersync._constants import (
    DEFAULT_BUDGET,
    DEFAULT_DOCUMENT_ID,
    DEFAULT_HEADER_IMAGE_POSITION,
    DEFAULT_TRIP_NAME,
)
from wandersync.exceptions import MalformedRemoteDataError
from wandersync.models._base import TripBaseModel, TripEnum


class EventCategory(TripEnum):
    TRANSPORT = "TRANSPORT"
    ACCOMMODATION = "ACCOMMODATION"
    SIGHTSEEING = "SIGHTSEEING"
    DINING = "DINING"
    ACTIVITY = "ACTIVITY"
    NOTE = "NOTE"

    @classmethod
    def _fallback(cls) -> EventCategory:
        return cls.NOTE


class HighlightLabel(TripBaseModel):
    text: str
    type: str = ""
    """Free-form tag type (users may define their own)."""


class Attachment(TripBaseModel):
    id: str
    name: str = ""
    mime_type: str = ""
    data: str = ""
    """Base64-encoded content."""


class ItineraryEvent(TripBaseModel):
    id: str
    title: str = ""
    category: EventCategory = EventCategory.ACTIVITY
    start_time: str = ""
    """ISO datetime string."""
    location: str | None = None
    map_link: str | None = None
    notes: str | None = None
    is_completed: bool = False
    cost: float | None = None
    labels: list[HighlightLabel] = Field(default_factory=list)
    reservation_code: str | None = None
    story: str | None = None
    color: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Expense(TripBaseModel):
    id: str
    description: str = ""
    amount: float = 0.0
    category: str = ""
    date: str = ""
    receipt_url: str | None = None


class FlightInfo(TripBaseModel):
    id: str
    flight_no: str = ""
    departure: str = ""
    arrival: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    booking_number: str | None = None
    ticket_url: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class OtherTransport(TripBaseModel):
    id: str
    type: str = ""
    """e.g. Train, Car Hire, Bus."""
    title: str = ""
    details: str = ""
    time: str = ""
    attachments: list[Attachment] = Field(default_factory=list)


class Accommodation(TripBaseModel):
    id: str
    name: str = ""
    start_date: str = ""
    end_date: str = ""
    location: str | None = None
    map_link: str | None = None
    notes: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class TripDocument(TripBaseModel):
    """Full state of one trip.

    ``last_synced`` is owned by the reconciler: it is stamped on every
    local edit and used for last-writer-wins comparison. Editing code
    must never set it.
    """

    id: str
    name: str = ""
    destination: str = ""
    start_date: str = ""
    end_date: str = ""
    events: list[ItineraryEvent] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)
    flights: list[FlightInfo] = Field(default_factory=list)
    other_transport: list[OtherTransport] = Field(default_factory=list)
    accommodations: list[Accommodation] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    budget: float = DEFAULT_BUDGET
    header_image: str | None = None
    header_image_position: int = DEFAULT_HEADER_IMAGE_POSITION
    trip_notes: str | None = None
    cloud_id: str | None = None
    last_synced: str | None = None

    @classmethod
    def default(cls, document_id: str = DEFAULT_DOCUMENT_ID) -> TripDocument:
        """Renderable document used before any stored or remote copy exists."""
        return cls(id=document_id, name=DEFAULT_TRIP_NAME)

    @classmethod
    def from_wire(cls, payload: Any) -> TripDocument | None:
        """Parse a stored/remote payload.

        Returns ``None`` when the payload has no non-empty ``id`` (treated as
        "no document"). Raises :class:`MalformedRemoteDataError` when an
        identified payload fails validation.
        """
        if not isinstance(payload, dict):
            return None
        doc_id = payload.get("id")
        if not isinstance(doc_id, str) or not doc_id.strip():
            return None
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise MalformedRemoteDataError(f"Trip document {doc_id!r} failed validation: {exc}") from exc

    def stamped(self, timestamp: str) -> TripDocument:
        """Copy of this document with ``last_synced`` set to *timestamp*."""
        return self.model_copy(update={"last_synced": timestamp})

    @property
    def total_spent(self) -> float:
        return sum(expense.amount for expense in self.expenses)

    def events_on(self, date: str) -> list[ItineraryEvent]:
        """Events whose start time falls on *date* (``YYYY-MM-DD``), in time order."""
        matching = [event for event in self.events if event.start_time.startswith(date)]
        return sorted(matching, key=lambda event: event.start_time)

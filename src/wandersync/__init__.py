"""wandersync - Offline-first sync core for a shared trip itinerary."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wandersync")
except PackageNotFoundError:
    __version__ = "0+local"
from wandersync.channels import RemoteChannel, RequestResponseChannel, SubscriptionChannel, build_channel
from wandersync.config import SyncConfig, TransportKind
from wandersync.exceptions import (
    MalformedRemoteDataError,
    RateLimitError,
    StorageUnavailableError,
    SyncConfigError,
    SyncTransportError,
    WanderSyncError,
)
from wandersync.guard import CircuitBreakerState, RateLimitedFetchGuard
from wandersync.models import (
    Accommodation,
    Attachment,
    CacheEntry,
    EventCategory,
    Expense,
    FlightInfo,
    HighlightLabel,
    ItineraryEvent,
    OtherTransport,
    TripDocument,
    WeatherReport,
)
from wandersync.reconciler import PushResult, Reconciler
from wandersync.state.policy import reconcile
from wandersync.state.sync_state import SyncState, SyncStatus
from wandersync.storage import JsonFileStore, LocalStore, MemoryStore
from wandersync.weather import WeatherClient, WeatherService

__all__ = [
    "__version__",
    "Accommodation",
    "Attachment",
    "CacheEntry",
    "CircuitBreakerState",
    "EventCategory",
    "Expense",
    "FlightInfo",
    "HighlightLabel",
    "ItineraryEvent",
    "JsonFileStore",
    "LocalStore",
    "MalformedRemoteDataError",
    "MemoryStore",
    "OtherTransport",
    "PushResult",
    "RateLimitError",
    "RateLimitedFetchGuard",
    "Reconciler",
    "RemoteChannel",
    "RequestResponseChannel",
    "StorageUnavailableError",
    "SubscriptionChannel",
    "SyncConfig",
    "SyncConfigError",
    "SyncState",
    "SyncStatus",
    "SyncTransportError",
    "TransportKind",
    "TripDocument",
    "WanderSyncError",
    "WeatherClient",
    "WeatherReport",
    "WeatherService",
    "build_channel",
    "reconcile",
]

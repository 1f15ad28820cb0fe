"""State synchronization core: store, poller, rates and pagination."""

from bullscope.core.intents import Intents
from bullscope.core.polling import Poller
from bullscope.core.rates import ExponentialAverage, RateTracker
from bullscope.core.store import (
    FocusedPane,
    JobListing,
    Listing,
    SchedulerListing,
    Snapshot,
    Store,
)

__all__ = [
    "ExponentialAverage",
    "FocusedPane",
    "Intents",
    "JobListing",
    "Listing",
    "Poller",
    "RateTracker",
    "SchedulerListing",
    "Snapshot",
    "Store",
]

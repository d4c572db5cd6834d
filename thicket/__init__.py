from thicket.common import (
    Entry,
    IncomparableError,
    InvariantViolation,
    IteratorStateError,
    NullNotPermittedError,
    Ordering,
    ThicketError,
)
from thicket.multimap import HashMultimap, LinkedMultimap, Multimap, SortedMultimap
from thicket.ordering import Custom, Natural, OrderingPolicy
from thicket.views import (
    AsMapView,
    EntriesView,
    KeyMultisetView,
    KeySetView,
    SortedKeySetView,
    SortedValueSetView,
    ValuesView,
    ValueSetView,
    ViewIterator,
)

__all__ = [
    "AsMapView",
    "Custom",
    "EntriesView",
    "Entry",
    "HashMultimap",
    "IncomparableError",
    "InvariantViolation",
    "IteratorStateError",
    "KeyMultisetView",
    "KeySetView",
    "LinkedMultimap",
    "Multimap",
    "Natural",
    "NullNotPermittedError",
    "Ordering",
    "OrderingPolicy",
    "SortedKeySetView",
    "SortedMultimap",
    "SortedValueSetView",
    "ThicketError",
    "ValueSetView",
    "ValuesView",
    "ViewIterator",
]

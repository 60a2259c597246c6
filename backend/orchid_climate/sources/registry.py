"""Provider tag -> adapter registry.

Zones and hardware devices store a provider tag; this is the one place
that maps it to code.
"""

from typing import Optional

from .base import SourceAdapter
from .controller import ControllerAdapter
from .open_meteo import OpenMeteoAdapter
from .station import StationAdapter

ADAPTERS: dict[str, SourceAdapter] = {
    adapter.provider: adapter
    for adapter in (StationAdapter(), ControllerAdapter(), OpenMeteoAdapter())
}


def get_adapter(provider: Optional[str]) -> Optional[SourceAdapter]:
    """Return the adapter registered for ``provider``, or None if unknown."""
    if not provider:
        return None
    return ADAPTERS.get(provider)

"""Tour-event providers."""

from src.providers.event.ld_json_provider import LdJsonEventProvider, extract_ld_json

__all__ = ["LdJsonEventProvider", "extract_ld_json"]

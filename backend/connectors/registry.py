"""
Parser Registry - closed map from parser_key to adapter class.

Unknown keys fail at dispatch time with UnknownParserError; nothing is
looked up by reflection.
"""
import logging
from typing import Dict, List, Type

from services.errors import UnknownParserError

from .base import ParserAdapter

logger = logging.getLogger(__name__)


class ParserRegistry:

    def __init__(self):
        self._adapters: Dict[str, Type[ParserAdapter]] = {}

    def register(self, adapter_class: Type[ParserAdapter]) -> Type[ParserAdapter]:
        key = adapter_class.PARSER_KEY
        if key in self._adapters and self._adapters[key] is not adapter_class:
            raise ValueError(f"Parser key already registered: {key}")
        self._adapters[key] = adapter_class
        logger.debug("parser_registered key=%s", key)
        return adapter_class

    def get(self, parser_key: str) -> Type[ParserAdapter]:
        try:
            return self._adapters[parser_key]
        except KeyError:
            raise UnknownParserError(f"Unknown parser: {parser_key}") from None

    def __contains__(self, parser_key):
        return parser_key in self._adapters

    def keys(self) -> List[str]:
        return sorted(self._adapters)


def build_default_registry() -> ParserRegistry:
    from .adapters.html_meetings import HtmlMeetingsAdapter

    registry = ParserRegistry()
    registry.register(HtmlMeetingsAdapter)
    return registry


_default_registry = None


def get_parser_registry() -> ParserRegistry:
    """Get the process-wide registry of shipped adapters."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_default_registry()
    return _default_registry

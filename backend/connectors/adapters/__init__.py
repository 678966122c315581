"""
Shipped parser adapters.

Adapters are registered in connectors.registry.build_default_registry().
"""
from .html_meetings import HtmlMeetingsAdapter

__all__ = ["HtmlMeetingsAdapter"]

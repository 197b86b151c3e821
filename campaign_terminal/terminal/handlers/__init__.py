"""Importing this package registers every command handler."""

from campaign_terminal.terminal.handlers import (  # noqa: F401
    campaigns,
    inbox,
    leads,
    performance,
    reports,
    workspace,
)
from campaign_terminal.terminal.handlers.registry import (
    HANDLER_REGISTRY,
    HandlerContext,
    HandlerSpec,
    get_handler,
)

__all__ = ["HANDLER_REGISTRY", "HandlerContext", "HandlerSpec", "get_handler"]

"""
Route dependencies - pull the services built in the lifespan off app.state.
"""

from fastapi import Request

from campaign_terminal.services.metrics_provider import MetricsProvider
from campaign_terminal.terminal.dispatcher import CommandDispatcher


def get_dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.dispatcher


def get_provider(request: Request) -> MetricsProvider:
    return request.app.state.provider

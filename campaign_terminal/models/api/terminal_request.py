# campaign_terminal/models/api/terminal_request.py
"""
Terminal API request models.
Used by routes for input validation.
"""

from pydantic import BaseModel, Field


class TerminalQueryRequest(BaseModel):
    """One line of operator input."""

    query: str = Field(..., max_length=500, description="Free text or short command, e.g. 'low leads'")
    force_refresh: bool = Field(default=False, description="Bypass the result cache")

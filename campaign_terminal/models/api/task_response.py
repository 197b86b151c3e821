# campaign_terminal/models/api/task_response.py
"""
Task generation response models.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AutoTaskResponse(BaseModel):
    id: str = Field(..., description="Stable within a day: '{bucket}-{client}-{date}'")
    type: str = Field(..., description="daily or weekly")
    bucket: str
    severity: str
    client_name: str
    title: str
    description: str
    category: str
    metrics: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    due_date: datetime
    completed: bool = False


class GenerateTasksResponse(BaseModel):
    daily: list[AutoTaskResponse]
    weekly: list[AutoTaskResponse]
    generated_at: datetime
    client_count: int = Field(..., description="Clients classified for this run")

"""
User record schema for CourseBot.

The record store keeps a coarse resume point across process restarts;
it is not authoritative for in-session navigation.
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class UserRecord(BaseModel):
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    current_step: int = 0  # resume cursor into the course
    last_activity: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def days_inactive(self, now: datetime) -> int:
        """Whole days since last activity (0 for a new record)."""
        if self.last_activity is None:
            return 0
        return max(0, (now - self.last_activity).days)

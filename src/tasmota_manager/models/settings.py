from dataclasses import dataclass
from datetime import datetime, time
from typing import Dict, Optional

from pydantic import BaseModel, Field

PROVIDER_HOST = "provider_host"
PROVIDER_PORT = "provider_port"
OPTIONAL_USER = "optional_user"
OPTIONAL_PASSWORD = "optional_password"


class ConnectionSettings(BaseModel):
    """Connection settings of one Tasmota device"""
    provider_host: str = "localhost"
    provider_port: int = Field(default=80, ge=1, le=65535)
    optional_user: Optional[str] = None
    optional_password: Optional[str] = None

    def get_configuration_values(self) -> Dict[str, str]:
        """
        Get the values available as URL placeholders.

        Unset optional values are left out, so templates referring to them
        fail instead of silently producing an empty string.
        """
        values = {
            PROVIDER_HOST: self.provider_host,
            PROVIDER_PORT: str(self.provider_port),
        }
        if self.optional_user:
            values[OPTIONAL_USER] = self.optional_user
        if self.optional_password:
            values[OPTIONAL_PASSWORD] = self.optional_password
        return values


@dataclass
class Activity:
    """Daily time window and interval in which a provider is polled"""
    start_time: time = time(0, 0, 0)
    end_time: time = time(23, 59, 59)
    interval_seconds: int = 60

    def is_active(self, now: Optional[datetime] = None) -> bool:
        current = (now or datetime.now()).time()
        return self.start_time <= current <= self.end_time

    def to_dict(self) -> Dict[str, object]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "interval_seconds": self.interval_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Activity":
        activity = cls()
        if data.get("start_time"):
            activity.start_time = time.fromisoformat(str(data["start_time"]))
        if data.get("end_time"):
            activity.end_time = time.fromisoformat(str(data["end_time"]))
        if data.get("interval_seconds"):
            activity.interval_seconds = int(data["interval_seconds"])
        return activity

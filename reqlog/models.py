"""Log record model and its wire (dict) representation."""

import datetime
from dataclasses import dataclass

from reqlog.errors import FormatError


@dataclass(frozen=True)
class MemoryUsage:
    rss: int
    heap_total: int
    heap_used: int
    external: int

    def to_dict(self) -> dict:
        return {
            "rss": self.rss,
            "heapTotal": self.heap_total,
            "heapUsed": self.heap_used,
            "external": self.external,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryUsage":
        return cls(
            rss=int(data["rss"]),
            heap_total=int(data["heapTotal"]),
            heap_used=int(data["heapUsed"]),
            external=int(data["external"]),
        )


@dataclass(frozen=True)
class CpuUsage:
    user: float      # percent of total ticks
    system: float    # percent of total ticks
    idle: float      # percent of total ticks
    total: float     # raw tick sum across all cores

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "system": self.system,
            "idle": self.idle,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CpuUsage":
        return cls(
            user=float(data["user"]),
            system=float(data["system"]),
            idle=float(data["idle"]),
            total=float(data["total"]),
        )


@dataclass(frozen=True)
class LogRecord:
    method: str
    url: str
    status_code: int
    response_time_ms: float
    timestamp: str       # ISO 8601, UTC
    memory_usage: MemoryUsage
    cpu_usage: CpuUsage

    def to_dict(self) -> dict:
        """Serialize using the camelCase keys of the persisted format."""
        return {
            "method": self.method,
            "url": self.url,
            "statusCode": self.status_code,
            "responseTime": self.response_time_ms,
            "timestamp": self.timestamp,
            "memoryUsage": self.memory_usage.to_dict(),
            "cpuUsage": self.cpu_usage.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LogRecord":
        """Rebuild a record from its persisted form.

        Raises FormatError if a key is missing or a value has the wrong shape.
        """
        if not isinstance(data, dict):
            raise FormatError(f"Expected a record object, got {type(data).__name__}")
        try:
            return cls(
                method=str(data["method"]),
                url=str(data["url"]),
                status_code=int(data["statusCode"]),
                response_time_ms=float(data["responseTime"]),
                timestamp=str(data["timestamp"]),
                memory_usage=MemoryUsage.from_dict(data["memoryUsage"]),
                cpu_usage=CpuUsage.from_dict(data["cpuUsage"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise FormatError(f"Malformed log record: {exc!r}") from exc


def utc_timestamp(now: datetime.datetime | None = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return now.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

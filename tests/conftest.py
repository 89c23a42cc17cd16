from collections import namedtuple

import pytest

from reqlog.config import Config, DatabaseType, TextConfig
from reqlog.metrics import MetricsCollector
from reqlog.models import CpuUsage, LogRecord, MemoryUsage

KEY = "0123456789abcdef0123456789abcdef"

FakeMemInfo = namedtuple("FakeMemInfo", ["rss", "vms", "shared"])
FakeCpuTimes = namedtuple("FakeCpuTimes", ["user", "nice", "system", "idle", "irq"])


class FakeProcess:
    def memory_info(self):
        return FakeMemInfo(rss=50_000_000, vms=400_000_000, shared=10_000_000)


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000


def _fake_cpu_times():
    return [
        FakeCpuTimes(user=300.0, nice=10.0, system=100.0, idle=1550.0, irq=40.0),
        FakeCpuTimes(user=200.0, nice=0.0, system=100.0, idle=1690.0, irq=10.0),
    ]


def _make_record(method="GET", url="/", status_code=200, response_time_ms=1.5):
    return LogRecord(
        method=method,
        url=url,
        status_code=status_code,
        response_time_ms=response_time_ms,
        timestamp="2024-01-15T10:30:00.000Z",
        memory_usage=MemoryUsage(rss=50_000_000, heap_total=400_000_000, heap_used=40_000_000, external=10_000_000),
        cpu_usage=CpuUsage(user=12.5, system=5.0, idle=81.0, total=4000.0),
    )


@pytest.fixture
def key():
    return KEY


@pytest.fixture
def sample_record():
    return _make_record(method="POST", url="/api/orders?id=42", status_code=201)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def text_config(tmp_path):
    return Config(
        database_type=DatabaseType.TEXT,
        text=TextConfig(file_path=str(tmp_path / "logs" / "log.txt")),
    )


@pytest.fixture
def encrypted_text_config(tmp_path):
    return Config(
        database_type=DatabaseType.TEXT,
        text=TextConfig(
            file_path=str(tmp_path / "logs" / "log.txt"),
            enable_log_security=True,
            log_security_encryption_key=KEY,
        ),
    )


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def collector(fake_clock):
    """Collector with a manual clock and fixed memory/CPU counters."""
    return MetricsCollector(clock=fake_clock, process=FakeProcess(), cpu_times_func=_fake_cpu_times)

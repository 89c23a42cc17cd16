"""Process-wide logger context and the stored-log accessor."""

from dataclasses import dataclass, field

from reqlog.config import Config
from reqlog.errors import UnsupportedOperationError
from reqlog.file_sink import FileSink
from reqlog.metrics import MetricsCollector
from reqlog.models import LogRecord
from reqlog.sink import Sink, build_sink


@dataclass(frozen=True)
class Context:
    config: Config
    sink: Sink
    collector: MetricsCollector = field(default_factory=MetricsCollector)


def create_context(config: Config, sink: Sink | None = None,
                   collector: MetricsCollector | None = None) -> Context:
    """Resolve the sink once at startup and bundle it with the config."""
    return Context(
        config=config,
        sink=sink if sink is not None else build_sink(config),
        collector=collector or MetricsCollector(),
    )


def read_stored_logs(context: Context) -> list[LogRecord]:
    """Return every record persisted by the text backend, in write order."""
    if not isinstance(context.sink, FileSink):
        raise UnsupportedOperationError(
            f"Reading stored logs requires the text backend, not {context.config.database_type.value}"
        )
    return context.sink.read_all()

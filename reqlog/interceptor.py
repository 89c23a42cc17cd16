"""Flask request interceptor that captures metrics once the response is sent.

The interceptor never touches the response itself. ``after_request``
registers a close callback on the response; Werkzeug fires it after the
body has been handed to the client, and the callback submits the sink
write to a background executor. Write failures are logged and counted,
never raised into the request.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from urllib.parse import quote

import psutil
from flask import Flask, g, request

from reqlog.context import Context
from reqlog.models import LogRecord

logger = logging.getLogger(__name__)

_G_TIMING = "_reqlog_timing"


@dataclass
class RequestTiming:
    """Per-request state: Started on creation, Finished after finish()."""

    method: str
    url: str
    start_mark: float
    finished: bool = False


def request_url(req) -> str:
    """Path plus query string as received, before percent-decoding.

    Uses the raw request target the WSGI server exposes (``RAW_URI`` from
    gunicorn and Werkzeug, ``REQUEST_URI`` from mod_wsgi and uWSGI).
    Without either, the decoded path is re-quoted.
    """
    raw = req.environ.get("RAW_URI") or req.environ.get("REQUEST_URI")
    if raw:
        return raw
    path = quote(req.path, safe="/:@!$&'()*+,;=~")
    query = req.query_string.decode("latin-1")
    return f"{path}?{query}" if query else path


class RequestInterceptor:
    def __init__(self, context: Context, executor: ThreadPoolExecutor | None = None):
        self._context = context
        self._executor = executor or ThreadPoolExecutor(
            max_workers=context.config.write_workers,
            thread_name_prefix="reqlog-writer",
        )
        self._lock = threading.Lock()
        self._written = 0
        self._failed = 0

    @property
    def context(self) -> Context:
        return self._context

    @property
    def written(self) -> int:
        with self._lock:
            return self._written

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def init_app(self, app: Flask) -> None:
        # Run first so the start mark precedes every other before_request hook
        app.before_request_funcs.setdefault(None, []).insert(0, self._before_request)
        app.after_request(self._after_request)
        app.extensions["reqlog"] = self

    def start(self, method: str, url: str) -> RequestTiming:
        return RequestTiming(method=method, url=url, start_mark=self._context.collector.mark())

    def _before_request(self):
        setattr(g, _G_TIMING, self.start(request.method, request_url(request)))

    def _after_request(self, response):
        timing = getattr(g, _G_TIMING, None)
        if timing is None:
            timing = self.start(request.method, request_url(request))
        response.call_on_close(lambda: self.finish(timing, response.status_code))
        return response

    def finish(self, timing: RequestTiming, status_code: int) -> Future | None:
        """Build the record for a finished request and hand it to the sink.

        Returns the pending write, or None if this request was already
        finished or the interceptor has been shut down.
        """
        if timing.finished:
            logger.debug("Request %s %s already logged", timing.method, timing.url)
            return None
        timing.finished = True

        try:
            record = self._context.collector.build_record(
                timing.method, timing.url, status_code, timing.start_mark
            )
        except (psutil.Error, OSError) as exc:
            logger.error("Error collecting metrics for %s %s: %s", timing.method, timing.url, exc, exc_info=exc)
            with self._lock:
                self._failed += 1
            return None
        try:
            future = self._executor.submit(self._context.sink.write, record)
        except RuntimeError as exc:
            logger.error("Error logging data: writer is shut down (%s)", exc)
            with self._lock:
                self._failed += 1
            return None
        future.add_done_callback(lambda f: self._on_write_done(f, record))
        return future

    def _on_write_done(self, future: Future, record: LogRecord) -> None:
        exc = future.exception()
        with self._lock:
            if exc is None:
                self._written += 1
            else:
                self._failed += 1
        if exc is not None:
            logger.error("Error logging data for %s %s: %s", record.method, record.url, exc, exc_info=exc)

    def shutdown(self, wait: bool = True, close_sink: bool = True) -> None:
        """Drain pending writes and, unless told otherwise, release the sink."""
        self._executor.shutdown(wait=wait)
        if close_sink:
            self._context.sink.close()

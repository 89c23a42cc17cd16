"""JSON-array file sink with optional per-entry encryption.

Every write reads the whole file, appends one entry and rewrites the file
through a temp file + fsync + rename. The read-modify-write is not guarded
against other writers: two writers racing on the same file can lose an
entry.
"""

import json
import logging
import os
import tempfile

from reqlog.cipher import CipherCodec
from reqlog.errors import EmptyLogError, FormatError, SinkWriteError
from reqlog.models import LogRecord

logger = logging.getLogger(__name__)


def _fsync_directory(directory: str) -> None:
    # Makes the rename itself durable; directories cannot be opened on Windows
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FileSink:
    def __init__(self, path: str, codec: CipherCodec | None = None):
        self._path = path
        self._codec = codec

    @property
    def path(self) -> str:
        return self._path

    @property
    def encrypted(self) -> bool:
        return self._codec is not None

    def _read_entries(self) -> list | None:
        """Return the stored entries, or None if the file is absent or empty."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise FormatError(f"Log file {self._path} is not valid UTF-8: {exc}") from exc

        if not content.strip():
            return None

        try:
            entries = json.loads(content)
        except json.JSONDecodeError as exc:
            raise FormatError(f"Log file {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(entries, list):
            raise FormatError(f"Log file {self._path} does not hold a JSON array")
        return entries

    def _write_entries(self, entries: list) -> None:
        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".reqlog-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        _fsync_directory(directory)

    def write(self, record: LogRecord) -> None:
        entry = record.to_dict()
        try:
            if self._codec is not None:
                entry = self._codec.encrypt(entry)
            entries = self._read_entries() or []
            entries.append(entry)
            self._write_entries(entries)
        except (OSError, FormatError) as exc:
            raise SinkWriteError(f"Failed to append to {self._path}: {exc}") from exc

    def read_all(self) -> list[LogRecord]:
        """Return every stored record in write order, decrypting if enabled."""
        entries = self._read_entries()
        if not entries:
            raise EmptyLogError(f"Log file {self._path} is empty")

        records = []
        for index, entry in enumerate(entries):
            if self._codec is not None:
                if not isinstance(entry, str):
                    raise FormatError(f"Entry {index} is plaintext but encryption is enabled")
                entry = self._codec.decrypt(entry)
            elif not isinstance(entry, dict):
                raise FormatError(f"Entry {index} is not a record object; is encryption disabled by mistake?")
            records.append(LogRecord.from_dict(entry))
        return records

    def close(self) -> None:
        pass

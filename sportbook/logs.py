"""
Log sinks attached to the application logger.

Usage:
    current_app.logger.info('Fetching events', extra={'data': {'search': 'yoga'}})

Records may carry a ``data`` mapping and a ``user_id`` through ``extra``.
When ``user_id`` is not given and a request is active, the logged-in
profile's id is used.

``LogBuffer`` keeps the most recent records in memory for the development
log viewer; ``ErrorLogHandler`` writes ERROR records to the ``error_logs``
table.
"""

import json
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from flask import has_request_context
from flask_login import current_user

from sportbook import db


def _record_user_id(record: logging.LogRecord) -> Optional[int]:
    user_id = getattr(record, 'user_id', None)
    if user_id is not None:
        return user_id
    if has_request_context() and current_user.is_authenticated:
        return current_user.id
    return None


def _record_data(record: logging.LogRecord) -> Optional[str]:
    data = getattr(record, 'data', None)
    if data is None:
        return None
    return json.dumps(data, default=str)


class LogBuffer(logging.Handler):
    """Fixed-capacity in-memory ring buffer of log entries."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.capacity = capacity
        self._entries = deque(maxlen=capacity)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord):
        try:
            entry = {
                'level': record.levelname.lower(),
                'message': record.getMessage(),
                'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                'logger': record.name,
                'data': _record_data(record),
                'user_id': _record_user_id(record),
            }
        except Exception:
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.append(entry)

    def get_logs(self) -> List[Dict[str, Any]]:
        with self._entries_lock:
            return list(self._entries)

    def get_logs_by_level(self, level: str) -> List[Dict[str, Any]]:
        level = level.lower()
        return [entry for entry in self.get_logs() if entry['level'] == level]

    def get_logs_by_user(self, user_id: int) -> List[Dict[str, Any]]:
        return [entry for entry in self.get_logs() if entry['user_id'] == user_id]

    def clear(self):
        with self._entries_lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)


class ErrorLogHandler(logging.Handler):
    """Persist ERROR records to the error_logs table on a separate connection."""

    def __init__(self, app, level=logging.ERROR):
        super().__init__(level)
        self.app = app

    def emit(self, record: logging.LogRecord):
        from sportbook.models import ErrorLog

        try:
            values = {
                'level': record.levelname.lower(),
                'logger': record.name,
                'message': record.getMessage(),
                'data': _record_data(record),
                'user_id': _record_user_id(record),
                'created_at': datetime.utcnow(),
            }
            with self.app.app_context():
                # Separate transaction so a failed request session cannot lose the record
                with db.engine.begin() as connection:
                    connection.execute(sa.insert(ErrorLog.__table__).values(**values))
        except Exception:
            self.handleError(record)

"""Chaser persistence package.

Provides the SQLite schema, row serializers, and the ``ChaserStore``
data-access class shared by every engine component.
"""

from chaser.store.schema import close_db, init_db, init_schema
from chaser.store.serializers import format_timestamp, parse_timestamp
from chaser.store.store import EDITABLE_REQUEST_FIELDS, ChaserStore

__all__ = [
    "EDITABLE_REQUEST_FIELDS",
    "ChaserStore",
    "close_db",
    "format_timestamp",
    "init_db",
    "init_schema",
    "parse_timestamp",
]

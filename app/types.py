"""Portable SQL types that work across PostgreSQL and SQLite.

Note tags and child names are ``text[]`` on PostgreSQL and a JSON list
everywhere else, so the test suite can run on in-memory SQLite.
"""

import sqlalchemy as sa
from sqlalchemy import JSON, TypeDecorator


class TextArray(TypeDecorator):
    """PostgreSQL ``ARRAY(Text)`` on PG, JSON list on other dialects."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import ARRAY

            return dialect.type_descriptor(ARRAY(sa.Text()))
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if value is not None:
            return [str(v) for v in value]
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return []
        return list(value)

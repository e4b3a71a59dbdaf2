"""PostgreSQL Record Store."""

from insect_jobs.infrastructure.persistence_postgres.record_store_sqla import RecordStoreSQLA
from insect_jobs.infrastructure.persistence_postgres.session import (
    create_session_factory,
    ensure_schema,
)

__all__ = ["RecordStoreSQLA", "create_session_factory", "ensure_schema"]

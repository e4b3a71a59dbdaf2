"""History Queries."""

from insect.application.history.queries.get_history import GetHistoryQuery, InsectHistoryItem

__all__ = ["GetHistoryQuery", "InsectHistoryItem"]

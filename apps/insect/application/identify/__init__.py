"""Identify - 식별 작업 적재."""

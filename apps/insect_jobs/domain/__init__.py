"""Job Queue 도메인 계층."""

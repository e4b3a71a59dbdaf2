"""Status - 작업 상태 조회."""

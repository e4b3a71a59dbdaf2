"""History - 사용자 식별 이력 조회."""

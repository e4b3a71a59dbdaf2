"""Insect Identification API.

이미지 업로드를 작업 큐에 적재하고, 작업 상태 / 식별 이력을 조회한다.
"""

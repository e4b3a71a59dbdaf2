"""Insect Identification Worker.

Redis Streams 대기 큐를 소비하여 곤충 이미지 분류 파이프라인을 실행하는 Worker Pool.
"""

"""Insect Identification Job Queue - 공용 코어.

API(insect)와 Worker(insect_worker)가 함께 사용하는 큐 계층:
- domain: JobEnvelope 상태 머신, Retry/Retention 정책
- application: Payload Codec, Broker/RateLimiter Port
- infrastructure: Redis Streams Broker (운영), In-Memory Broker (로컬/테스트)
"""

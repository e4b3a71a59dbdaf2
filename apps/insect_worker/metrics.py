"""Insect Worker Prometheus 메트릭

1. claim / 결과 상태별 처리율
2. 동시 실행 중인 attempt 수
3. attempt 레이턴시 분포
4. stall 재회수 / 지연 재시도 promote
5. claim rate limit 대기
"""

import math

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

REGISTRY = CollectorRegistry(auto_describe=True)


def exponential_buckets_range(min_val: float, max_val: float, count: int) -> tuple:
    """Go prometheus.ExponentialBucketsRange 호환 구현."""
    if count < 2:
        return (min_val, max_val)
    log_min = math.log(min_val)
    log_max = math.log(max_val)
    factor = (log_max - log_min) / (count - 1)
    return tuple(round(math.exp(log_min + factor * i), 4) for i in range(count))


# Attempt Latency: Vision 모델 호출 포함 (100ms ~ 120s)
ATTEMPT_LATENCY_BUCKETS = exponential_buckets_range(0.1, 120.0, 14)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Claim / 결과
# ─────────────────────────────────────────────────────────────────────────────

INSECT_WORKER_CLAIMS = Counter(
    "insect_worker_claims_total",
    "Total activated claims",
    registry=REGISTRY,
)

INSECT_WORKER_OUTCOMES = Counter(
    "insect_worker_outcomes_total",
    "Attempt outcomes by resulting job state",
    labelnames=["state"],  # completed, delayed, failed, stale
    registry=REGISTRY,
)

INSECT_WORKER_ERRORS = Counter(
    "insect_worker_errors_total",
    "Pipeline errors by exception type",
    labelnames=["error_type"],
    registry=REGISTRY,
)


# ─────────────────────────────────────────────────────────────────────────────
# 2. 동시성
# ─────────────────────────────────────────────────────────────────────────────

INSECT_WORKER_ACTIVE = Gauge(
    "insect_worker_active_attempts",
    "Attempts currently running in this pool instance",
    registry=REGISTRY,
)

INSECT_WORKER_STATUS = Gauge(
    "insect_worker_status",
    "Worker pool status (1=running, 0=stopped)",
    registry=REGISTRY,
)


# ─────────────────────────────────────────────────────────────────────────────
# 3. 레이턴시
# ─────────────────────────────────────────────────────────────────────────────

INSECT_WORKER_ATTEMPT_LATENCY = Histogram(
    "insect_worker_attempt_latency_seconds",
    "Pipeline attempt latency",
    registry=REGISTRY,
    buckets=ATTEMPT_LATENCY_BUCKETS,
)


# ─────────────────────────────────────────────────────────────────────────────
# 4. Maintenance
# ─────────────────────────────────────────────────────────────────────────────

INSECT_WORKER_RECLAIMED = Counter(
    "insect_worker_reclaimed_total",
    "Stalled deliveries reclaimed",
    labelnames=["state"],  # waiting, failed
    registry=REGISTRY,
)

INSECT_WORKER_PROMOTED = Counter(
    "insect_worker_promoted_total",
    "Delayed jobs promoted back to waiting",
    registry=REGISTRY,
)


# ─────────────────────────────────────────────────────────────────────────────
# 5. Rate Limit
# ─────────────────────────────────────────────────────────────────────────────

INSECT_WORKER_RATE_LIMITED = Counter(
    "insect_worker_rate_limited_total",
    "Claims deferred by the shared rate limiter",
    registry=REGISTRY,
)

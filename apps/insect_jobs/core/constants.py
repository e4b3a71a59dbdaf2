"""
Insect Identification 정적 상수

API / Worker가 공유하는 값 중 배포 환경과 무관한 것만 둔다.
환경마다 달라지는 값(URL, 동시성, rate limit 등)은 각 서비스의 Settings에 있다.
"""

# ─────────────────────────────────────────────────────────────────────────────
# Service
# ─────────────────────────────────────────────────────────────────────────────
SERVICE_NAME = "insect-identification"
SERVICE_VERSION = "1.0.0"

# ─────────────────────────────────────────────────────────────────────────────
# Job Queue
# ─────────────────────────────────────────────────────────────────────────────
# Redis 키 prefix / Consumer Group 기본값
DEFAULT_QUEUE_PREFIX = "insect:identify"
DEFAULT_CONSUMER_GROUP = "insect-workers"

# 작업 ID: insect-{epoch_ms}-{suffix}
JOB_ID_PREFIX = "insect"

# ─────────────────────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────────────────────
# Settings 없이 configure_logging을 호출할 때 읽는 env 키
ENV_KEY_ENVIRONMENT = "ENVIRONMENT"
ENV_KEY_LOG_LEVEL = "LOG_LEVEL"
ENV_KEY_LOG_FORMAT = "LOG_FORMAT"

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"

ECS_VERSION = "8.11.0"

# 표준 LogRecord 속성. 이 외의 속성은 extra로 전달된 필드로 취급
EXCLUDED_LOG_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

# ─────────────────────────────────────────────────────────────────────────────
# Masking
# ─────────────────────────────────────────────────────────────────────────────
# extra 키에 포함되면 값을 마스킹 (대소문자 무시, 부분 일치)
SENSITIVE_FIELD_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "credential",
    }
)

MASK_PLACEHOLDER = "***"
MASK_PRESERVE_PREFIX = 4
MASK_PRESERVE_SUFFIX = 4
MASK_MIN_LENGTH = 10

"""Redis 키 레이아웃.

{prefix}:job:{job_id}   Hash   작업 Envelope
{prefix}:wait           Stream 대기 큐 (field: job_id)
{prefix}:delayed        ZSet   backoff 대기 (score: delayed_until ms)
{prefix}:completed      ZSet   완료 인덱스 (score: finished_at ms, retention count용)
{prefix}:limiter        ZSet   claim rate limit sliding log
"""

from __future__ import annotations

from dataclasses import dataclass

from insect_jobs.core.constants import DEFAULT_QUEUE_PREFIX


@dataclass(frozen=True)
class QueueKeys:
    prefix: str = DEFAULT_QUEUE_PREFIX

    @property
    def job_prefix(self) -> str:
        return f"{self.prefix}:job:"

    def job(self, job_id: str) -> str:
        return f"{self.job_prefix}{job_id}"

    @property
    def wait(self) -> str:
        return f"{self.prefix}:wait"

    @property
    def delayed(self) -> str:
        return f"{self.prefix}:delayed"

    @property
    def completed(self) -> str:
        return f"{self.prefix}:completed"

    @property
    def limiter(self) -> str:
        return f"{self.prefix}:limiter"

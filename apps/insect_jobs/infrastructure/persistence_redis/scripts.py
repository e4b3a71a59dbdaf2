"""Job Queue Lua Scripts.

모든 상태 전이는 Lua 스크립트 안에서 원자적으로 수행된다.
Hash 필드는 문자열이며, 빈 문자열은 None을 의미한다.
"""

# ─────────────────────────────────────────────────────────────────
# Claim 활성화: waiting → active
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = job hash
# ARGV[1] = now (ms)
# 반환: HGETALL (flat list) 또는 nil
ACTIVATE_SCRIPT = """
local job_key = KEYS[1]

local state = redis.call('HGET', job_key, 'state')
if state ~= 'waiting' then
    return nil
end

local attempts = tonumber(redis.call('HGET', job_key, 'attempts') or '0')
local max_attempts = tonumber(redis.call('HGET', job_key, 'max_attempts') or '1')
if attempts >= max_attempts then
    return nil
end

redis.call('HSET', job_key,
    'state', 'active',
    'attempts', attempts + 1,
    'progress', 0,
    'started_at', ARGV[1],
    'delayed_until', '')

return redis.call('HGETALL', job_key)
"""

# ─────────────────────────────────────────────────────────────────
# Commit: active → completed | delayed | failed (CAS)
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = job hash
# KEYS[2] = wait stream
# KEYS[3] = delayed zset
# KEYS[4] = completed zset
# ARGV[1] = consumer group
# ARGV[2] = stream message id
# ARGV[3] = job_id
# ARGV[4] = expected attempts
# ARGV[5] = new state
# ARGV[6] = score (delayed_until 또는 finished_at)
# ARGV[7] = retention ttl (seconds)
# ARGV[8] = completed keep count
# ARGV[9] = job key prefix
# ARGV[10..] = field, value, ...
# 반환: 1 (기록) / 0 (stale claim)
COMMIT_SCRIPT = """
local job_key = KEYS[1]

if redis.call('HGET', job_key, 'state') ~= 'active' then
    return 0
end
if tonumber(redis.call('HGET', job_key, 'attempts') or '-1') ~= tonumber(ARGV[4]) then
    return 0
end

for i = 10, #ARGV, 2 do
    redis.call('HSET', job_key, ARGV[i], ARGV[i + 1])
end

redis.call('XACK', KEYS[2], ARGV[1], ARGV[2])
redis.call('XDEL', KEYS[2], ARGV[2])

local new_state = ARGV[5]
local score = tonumber(ARGV[6])
local ttl = tonumber(ARGV[7])

if new_state == 'delayed' then
    redis.call('ZADD', KEYS[3], score, ARGV[3])
elseif new_state == 'completed' then
    redis.call('EXPIRE', job_key, ttl)
    redis.call('ZADD', KEYS[4], score, ARGV[3])
    -- TTL로 이미 만료된 Hash의 인덱스 정리
    redis.call('ZREMRANGEBYSCORE', KEYS[4], '-inf', score - ttl * 1000)
    local overflow = redis.call('ZCARD', KEYS[4]) - tonumber(ARGV[8])
    if overflow > 0 then
        local evicted = redis.call('ZRANGE', KEYS[4], 0, overflow - 1)
        for _, id in ipairs(evicted) do
            redis.call('DEL', ARGV[9] .. id)
        end
        redis.call('ZREMRANGEBYRANK', KEYS[4], 0, overflow - 1)
    end
elseif new_state == 'failed' then
    redis.call('EXPIRE', job_key, ttl)
end

return 1
"""

# ─────────────────────────────────────────────────────────────────
# Progress: active claim에서만 단조 증가
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = job hash
# ARGV[1] = expected attempts
# ARGV[2] = progress
PROGRESS_SCRIPT = """
local job_key = KEYS[1]

if redis.call('HGET', job_key, 'state') ~= 'active' then
    return 0
end
if tonumber(redis.call('HGET', job_key, 'attempts') or '-1') ~= tonumber(ARGV[1]) then
    return 0
end

local current = tonumber(redis.call('HGET', job_key, 'progress') or '0')
local progress = tonumber(ARGV[2])
if progress <= current then
    return 0
end

redis.call('HSET', job_key, 'progress', progress)
return 1
"""

# ─────────────────────────────────────────────────────────────────
# Promote: backoff 만료된 delayed → waiting
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = delayed zset
# KEYS[2] = wait stream
# ARGV[1] = now (ms)
# ARGV[2] = limit
# ARGV[3] = job key prefix
PROMOTE_SCRIPT = """
local ids = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1], 'LIMIT', 0, tonumber(ARGV[2]))
local promoted = 0

for _, id in ipairs(ids) do
    redis.call('ZREM', KEYS[1], id)
    local job_key = ARGV[3] .. id
    if redis.call('HGET', job_key, 'state') == 'delayed' then
        redis.call('HSET', job_key, 'state', 'waiting', 'delayed_until', '')
        redis.call('XADD', KEYS[2], '*', 'job_id', id)
        promoted = promoted + 1
    end
end

return promoted
"""

# ─────────────────────────────────────────────────────────────────
# Stalled 재회수: XAUTOCLAIM으로 가져온 전달 처리
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = job hash
# KEYS[2] = wait stream
# ARGV[1] = consumer group
# ARGV[2] = stream message id
# ARGV[3] = job_id
# ARGV[4] = now (ms)
# ARGV[5] = failure reason
# 반환: {state, attempts}
REQUEUE_STALLED_SCRIPT = """
local job_key = KEYS[1]

redis.call('XACK', KEYS[2], ARGV[1], ARGV[2])
redis.call('XDEL', KEYS[2], ARGV[2])

local state = redis.call('HGET', job_key, 'state')
if not state then
    return {'missing', 0}
end

local attempts = tonumber(redis.call('HGET', job_key, 'attempts') or '0')

if state == 'waiting' then
    -- reserve 후 activate 전에 죽은 경우
    redis.call('XADD', KEYS[2], '*', 'job_id', ARGV[3])
    return {'waiting', attempts}
end
if state ~= 'active' then
    return {state, attempts}
end

local max_attempts = tonumber(redis.call('HGET', job_key, 'max_attempts') or '1')
if attempts >= max_attempts then
    redis.call('HSET', job_key,
        'state', 'failed',
        'failure_reason', ARGV[5],
        'finished_at', ARGV[4])
    redis.call('EXPIRE', job_key, tonumber(redis.call('HGET', job_key, 'failed_max_age') or '86400'))
    return {'failed', attempts}
end

redis.call('HSET', job_key, 'state', 'waiting', 'progress', 0)
redis.call('XADD', KEYS[2], '*', 'job_id', ARGV[3])
return {'waiting', attempts}
"""

# ─────────────────────────────────────────────────────────────────
# Claim Rate Limit: sliding log
# ─────────────────────────────────────────────────────────────────
# KEYS[1] = limiter zset
# ARGV[1] = window (ms)
# ARGV[2] = max claims per window
# ARGV[3] = unique member
# 시각은 Redis 서버 TIME 기준 (Worker 간 시계 차이 무관)
# 반환: {allowed(1|0), retry_after_ms}
RATE_LIMIT_SCRIPT = """
local key = KEYS[1]
local t = redis.call('TIME')
local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
local window = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)

local count = redis.call('ZCARD', key)
if count < limit then
    redis.call('ZADD', key, now, ARGV[3])
    redis.call('PEXPIRE', key, window)
    return {1, 0}
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local retry_after = tonumber(oldest[2]) + window - now
if retry_after < 1 then
    retry_after = 1
end
return {0, retry_after}
"""

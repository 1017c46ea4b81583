"""Redis Lua script for the atomic leaky-bucket admission test.

Redis runs a script without interleaving other commands, so reading the
stored levels, draining them, testing the cost and committing the new
levels happen as one step for a key, across every instance sharing Redis.
"""

import hashlib

# KEYS[1]: subject key (prefix included)
# ARGV[1]: cost
# ARGV[2i], ARGV[2i+1]: flow and burst of tier i, slowest flow first
#
# Each tier keeps two hash fields named after its parameters:
# "<flow>:<burst>:level" and "<flow>:<burst>:time". Time comes from the
# Redis server clock so every caller observes the same "now".
#
# Returns {1, free, 0} when admitted and {0, excess, tier} when denied.
# Numbers are returned as strings since Redis truncates Lua numbers to
# integers in replies.
BUCKET_SCRIPT = """
if redis.replicate_commands then
    redis.replicate_commands()
end

local key = KEYS[1]
local cost = tonumber(ARGV[1])
local count = (#ARGV - 1) / 2

local clock = redis.call('TIME')
local now = tonumber(clock[1]) + tonumber(clock[2]) / 1000000

local names = {}
local fields = {}
for i = 1, count do
    names[i] = ARGV[2 * i] .. ':' .. ARGV[2 * i + 1]
    fields[2 * i - 1] = names[i] .. ':level'
    fields[2 * i] = names[i] .. ':time'
end
local stored = redis.call('HMGET', key, unpack(fields))

local projected = {}
local free = nil
local denied = 0
local excess = 0
local longest = -1
for i = 1, count do
    local flow = tonumber(ARGV[2 * i])
    local burst = tonumber(ARGV[2 * i + 1])
    local level = tonumber(stored[2 * i - 1]) or 0
    local last = tonumber(stored[2 * i]) or now

    -- A clock stepping backwards never raises the level
    local elapsed = math.max(0, now - last)
    local used = math.max(0, level - flow * elapsed) + cost
    projected[i] = used

    if used > burst then
        local wait = (used - burst) / flow
        if wait > longest then
            longest = wait
            denied = i
            excess = used - burst
        end
    elseif free == nil or burst - used < free then
        free = burst - used
    end
end

if denied > 0 then
    return {0, string.format('%.17g', excess), denied}
end

local update = {}
local drain = 0
for i = 1, count do
    local flow = tonumber(ARGV[2 * i])
    update[4 * i - 3] = names[i] .. ':level'
    update[4 * i - 2] = string.format('%.17g', projected[i])
    update[4 * i - 1] = names[i] .. ':time'
    update[4 * i] = string.format('%.17g', now)
    drain = math.max(drain, projected[i] / flow)
end
redis.call('HSET', key, unpack(update))

-- Once every tier has drained the stored state equals an absent one.
-- Other limiters may keep slower tiers on the same key, so never shorten it.
local expire = math.ceil(drain * 1000)
if redis.call('PTTL', key) < expire then
    redis.call('PEXPIRE', key, expire)
end

return {1, string.format('%.17g', free), 0}
"""

BUCKET_SCRIPT_SHA1 = hashlib.sha1(BUCKET_SCRIPT.encode("utf-8")).hexdigest()

## Redis Schema / Keys


# **Key naming conventions**
# - `room:doc:{code}`: string, JSON document holding the whole room
# - `rooms:index`: set of live room codes (discovery)
# - `room:channel:{code}`: pubsub channel name (string)


# **Writes**
# - Every mutation is WATCH room:doc -> read -> transform -> MULTI/SET/PUBLISH/EXEC.
# - EXEC fails with WatchError when another client touched the document in between;
#   the whole read-transform-commit cycle is then retried.
# - Deleting a room removes the document and its index entry and publishes `null`.


# **Pub/Sub**
# - Messages published are the full room JSON after the commit (or `null` on deletion).

REDIS_ROOM_KEY = "room:doc:{code}" # room code - JSON document of the whole room
REDIS_ROOM_INDEX = "rooms:index" # set of live room codes
REDIS_ROOM_CHANNEL = "room:channel:{code}" # room code - pub/sub channel carrying snapshots

# **Example `room:doc:{code}` document**
# - `code` = `{code}`
# - `leader_id` = player id of the current leader
# - `imposters_count` = integer
# - `started` = bool
# - `turn_index` = integer
# - `players` = {player_id: {id, name, role, joined_at}}
# - `chat` = [{kind, seq, text, ts, ...}]
# - `chat_seq` = next chat sequence number
# - `created_at` = ISO timestamp

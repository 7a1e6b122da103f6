REDIS_CONN_KEY = "conn:{connection_id}" # connection id - connection metadata hash
REDIS_ONLINE_KEY = "chat:online" # set of connection IDs currently connected to any instance
REDIS_STATS_KEY = "chat:stats" # hash of counters

# **Example `conn:{id}` hash fields**
# - `connected_at` = ISO timestamp
# - `client_host` = remote address reported by the transport
#
# **`chat:stats` hash fields**
# - `pairs_formed` = integer, incremented once per partnership

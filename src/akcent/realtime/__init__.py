"""Real-time push channel.

Learn: One websocket endpoint (/realtime-ws) carries every change as a
{type, data} JSON frame. Route handlers call the broadcaster after they
commit; browsers (or the `akcent listen` CLI) map each event type onto the
cached queries it makes stale and refetch them.
"""

from datetime import datetime, timezone

# 2026-03-10 12:00:00 UTC
T0 = int(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)

DAY_MS = 24 * 60 * 60 * 1000
TTL = 5 * 60 * 1000

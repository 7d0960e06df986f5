import os

DAILY_LIMIT = int(os.getenv("MATHCAP_DAILY_LIMIT", "10"))
COOLDOWN_MS = int(os.getenv("MATHCAP_COOLDOWN_MS", "30000"))
CHALLENGE_TTL_MS = int(os.getenv("MATHCAP_CHALLENGE_TTL_MS", str(5 * 60 * 1000)))
CREDITS_PER_SOLVE = int(os.getenv("MATHCAP_CREDITS_PER_SOLVE", "1"))

# Background sweep of expired challenges; 0 disables the thread
SWEEP_INTERVAL_S = float(os.getenv("MATHCAP_SWEEP_INTERVAL_S", "60"))

HOST = os.getenv("MATHCAP_HOST", "0.0.0.0")
PORT = int(os.getenv("MATHCAP_PORT", "8000"))
LOG_LEVEL = os.getenv("MATHCAP_LOG_LEVEL", "INFO").upper()

import os

# Rate limits are read at import time; keep them off for every test module
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

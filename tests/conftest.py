import os
import sys
from pathlib import Path

# Cheap Argon2 parameters and a fixed environment before app settings are first loaded.
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST_KIB", "8192")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
os.environ.setdefault("REGISTER_AUTO_LOGIN", "false")
os.environ.setdefault("SESSION_SLIDING_EXPIRATION", "false")

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

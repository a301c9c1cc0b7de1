import sys
from pathlib import Path
import os


# Ensure project src is on path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (ROOT, SRC):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

# Offline test env: no gateway key, no Redis, no demo seeding
os.environ["LLM_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["SEED_DEMO_REPORTS"] = "false"

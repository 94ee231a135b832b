import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

# api.session refuses to import without a signing secret
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

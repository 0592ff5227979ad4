# Makes `main` and `repo` importable and points the catalog at a throwaway SQLite file
import os
import sys
import tempfile
from pathlib import Path

SERVICE_DIR = Path(__file__).resolve().parent
if str(SERVICE_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICE_DIR))

_tmp = tempfile.mkdtemp(prefix="catalog-test-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_tmp}/catalog.db"

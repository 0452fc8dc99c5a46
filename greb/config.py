import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Paths
DATA_DIR = Path(os.getenv("GREB_DATA_DIR", str(_PROJECT_ROOT / "data")))

# Record store
RECORDS_PATH = DATA_DIR / os.getenv("GREB_RECORDS_FILE", "portarias.json")

# Issuer catalog
ISSUERS_PATH = DATA_DIR / os.getenv("GREB_ISSUERS_FILE", "emissores.json")

# Logging
LOG_LEVEL = os.getenv("GREB_LOG_LEVEL", "INFO").strip().upper() or "INFO"

"""Server configuration read from the environment.

Values come from the process environment, or from a .env file loaded by
app.py before this module is imported.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

# root for configs/ and workspace/
DATA_DIR = Path(os.getenv("TEAMFLOW_DATA_DIR", "agent-data"))

BACKEND_URL = os.getenv("TEAMFLOW_BACKEND_URL", "http://localhost:8010")
API_TOKEN = os.getenv("API_TOKEN")

# hard wall clock for one team run, in seconds
RUN_TIMEOUT = float(os.getenv("TEAMFLOW_RUN_TIMEOUT", "600"))

# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

LOG_LEVEL = os.getenv("TEAMFLOW_LOG_LEVEL", "INFO").upper()

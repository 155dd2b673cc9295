import os

DB_NAME = os.environ.get("CHARSHEET_DB", "characters.db")

# API_BASE_URL = "https://sheets.example.org/api"
API_BASE_URL = os.environ.get("CHARSHEET_API_URL", "http://localhost:5000/api")

REFERENCE_DATA_URL = (
    "https://raw.githubusercontent.com/5etools-mirror-3/5etools-src/main/data/"
)

HTTP_TIMEOUT_SECONDS = 10

# Rapid edits inside this window collapse into one local write
AUTOSAVE_DELAY_SECONDS = 0.5

ALLOWED_SPELL_SOURCES = ("PHB", "XGE", "TCE")

LOG_LEVEL = os.environ.get("CHARSHEET_LOG_LEVEL", "INFO")

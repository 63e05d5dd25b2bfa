# config.py
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

API_URL = os.getenv("LMS_API_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT = float(os.getenv("LMS_REQUEST_TIMEOUT", "15"))
TOKEN_STORE_PATH = os.getenv("LMS_TOKEN_STORE", str(Path.home() / ".campus_portal" / "session.json"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DRAFT_TTL_MINUTES = float(os.getenv("DRAFT_TTL_MINUTES", "120"))
MAX_DRAFTS_PER_OWNER = int(os.getenv("MAX_DRAFTS_PER_OWNER", "20"))

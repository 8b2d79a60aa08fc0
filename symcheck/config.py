import os

from dotenv import load_dotenv

load_dotenv()

# Remote assessment gateway
GATEWAY_URL = os.getenv("GATEWAY_URL", "http://localhost:8000")
GATEWAY_TIMEOUT = float(os.getenv("GATEWAY_TIMEOUT", "30"))

# Local durable storage
DATABASE_PATH = os.getenv("DATABASE_PATH", "symcheck.db")
SAVED_ASSESSMENTS_SLOT = os.getenv("SAVED_ASSESSMENTS_SLOT", "savedAssessments")

# Number handed to the telephony dialer on emergency escalation
EMERGENCY_NUMBER = os.getenv("EMERGENCY_NUMBER", "911")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Per-subscriber event buffer; events for a full subscriber are dropped
EVENT_QUEUE_SIZE = int(os.getenv("EVENT_QUEUE_SIZE", "100"))

"""
Vercel entry point for the Compliance Tracker API
"""
import sys
import os

# Add parent directory to path
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("SLA_SCAN_ENABLED", "false")  # No background scheduler in serverless

from mangum import Mangum  # noqa: E402
from src.main import app  # noqa: E402

# Lambda handler for ASGI app; lifespan "auto" runs startup when supported
handler = Mangum(app, lifespan="auto")

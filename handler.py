"""
AWS Lambda handler — Mangum wrapper for the PatternGuard FastAPI app.
"""

from mangum import Mangum

from patternguard.main import app

handler = Mangum(app, lifespan="off")

"""
Serverless entry point: the hosting runtime imports `app` from here
and serves the team building API as an ASGI application.
"""
import sys
import os

# Project root holds the teambuilder package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from teambuilder.main import app  # noqa: E402,F401

"""
Serverless entry point: Vercel's Python runtime serves the `app` found here.

Attempts travel to the client as signed sessions, so nothing survives
between invocations except SESSION_SECRET. Set it in the deployment;
without it every cold start signs with a fresh random key and in-flight
attempts are rejected.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tutor_server import app  # noqa: E402

__all__ = ["app"]

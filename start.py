#!/usr/bin/env python3
"""
INTERVAI Service Entrypoint

This script determines which process to run based on the SERVICE_TYPE
environment variable. Set SERVICE_TYPE in each deployed service's settings.

SERVICE_TYPE values:
  - web (default): Run the FastAPI web server via gunicorn
  - worker: Run the RQ workers (question-generation + export-generation)
  - maintenance: Run queue recovery and export cleanup
"""

import os
import sys

SERVICE_TYPE = os.environ.get("SERVICE_TYPE", "web")
PORT = os.environ.get("PORT", "8080")
WEB_WORKERS = os.environ.get("WEB_CONCURRENCY", "2")

print("=" * 50)
print(f"INTERVAI Service: {SERVICE_TYPE}")
print("=" * 50)

if SERVICE_TYPE == "web":
    print("Starting web server (gunicorn)...")
    cmd = [
        "gunicorn", "intervai.api.main:app",
        "--workers", WEB_WORKERS,
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--bind", f"0.0.0.0:{PORT}",
        "--timeout", "120",
        "--graceful-timeout", "30"
    ]
elif SERVICE_TYPE == "worker":
    print("Starting RQ workers (question-generation + export-generation queues)...")
    cmd = ["python", "-m", "intervai.queue.run_worker"]
elif SERVICE_TYPE == "maintenance":
    print("Starting maintenance scheduler...")
    cmd = ["python", "-m", "intervai.queue.run_maintenance"]
else:
    print(f"ERROR: Unknown SERVICE_TYPE: {SERVICE_TYPE}")
    print("Valid values: web, worker, maintenance")
    sys.exit(1)

print(f"Running: {' '.join(cmd)}")
print("=" * 50)

# Replace this process with the actual command
os.execvp(cmd[0], cmd)

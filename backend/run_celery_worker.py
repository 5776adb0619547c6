#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker runner.
Consumes the bookings queue and, with --beat, embeds the scheduler.
"""
import os
from pathlib import Path
import subprocess
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("SITE_MODE", "local")

if __name__ == "__main__":
    queues = os.getenv("CELERY_QUEUES") or os.getenv("CELERY_QUEUE") or "bookings,celery"
    print(f"Starting Celery worker (SITE_MODE={os.getenv('SITE_MODE')}), queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "toolshare.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--max-tasks-per-child=100",
        "-Q",
        queues,
    ]
    if "--beat" in sys.argv[1:]:
        cmd.append("--beat")

    subprocess.run(cmd)

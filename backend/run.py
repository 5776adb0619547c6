#!/usr/bin/env python3
# backend/run.py
"""
Development API server runner.
For local development only - serves toolshare.main:app with reload.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

# Default SITE_MODE for local development
os.environ.setdefault("SITE_MODE", "local")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting ToolShare API (SITE_MODE={os.getenv('SITE_MODE')})")
    print(f"API docs: http://localhost:{port}/docs")

    uvicorn.run(
        "toolshare.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )

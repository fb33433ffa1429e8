"""
Startup script for the Intellyo backend
Run from backend/app: python start_server.py
"""

import asyncio
import logging
import os
import sys

# Force unbuffered output
os.environ['PYTHONUNBUFFERED'] = '1'

# Test runs use asyncio subprocesses, which need the Proactor loop on Windows
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

from config import load_settings


def main():
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n Starting Intellyo Test Runner...", flush=True)
    print(f" Server will run on: http://localhost:{settings.port}", flush=True)
    print(f" Tests directory: {settings.test_dir}", flush=True)
    print(f" AI provider: {settings.provider}", flush=True)
    print("\n" + "="*50, flush=True)

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()

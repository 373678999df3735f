#!/usr/bin/env python3
"""Start the Forgebox API server."""
import os

import uvicorn

from src.infrastructure.config import load_config

if __name__ == "__main__":
    config = load_config()
    uvicorn.run(
        "src.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=os.getenv("RELOAD", "1") != "0",
        log_level=config.log_level.lower(),
    )

#!/usr/bin/env python
"""Production-ready server startup script with consistent logging"""

import uvicorn
from sector_gateway.core.config import get_settings
from sector_gateway.core.uvicorn_config import get_uvicorn_log_config

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "sector_gateway.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info",
        log_config=get_uvicorn_log_config()
    )

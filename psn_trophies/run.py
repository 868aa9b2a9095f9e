#!/usr/bin/env python3
"""Run the PSN Trophies backend"""
import uvicorn

from psn_trophies.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "psn_trophies.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )

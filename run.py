#!/usr/bin/env python3
"""Run script for taskseries."""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "taskseries.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )

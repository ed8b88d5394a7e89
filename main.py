"""
Main entry point for the course API.
"""
import uvicorn
from courseapi.api.main import app

if __name__ == "__main__":
    uvicorn.run(
        "courseapi.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )

"""
Main entry point for the QR Feedback API.
"""
import os

import uvicorn
from qrfeedback.api.main import app

if __name__ == "__main__":
    uvicorn.run(
        "qrfeedback.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5000")),
        reload=True,
        log_level="info"
    )

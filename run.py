#!/usr/bin/env python3
"""Run the Semantic Find HTTP server."""
from pathlib import Path

# Load .env from project root before any app code runs
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

import uvicorn

from semantic_find.config import HOST, PORT

if __name__ == "__main__":
    uvicorn.run(
        "semantic_find.main:app",
        host=HOST,
        port=PORT,
        reload=True,
    )

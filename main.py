"""
FastAPI app exposing the permission grant engine to a front-end.

Decisions:
- .env is loaded before importing msg_grants so GRAPH_BASE_URL and
  GRAPH_TIMEOUT_SECONDS are visible (Ruff E402 suppressed for that).
- Callers authenticate to Graph themselves and send their bearer token; this app
  holds no credentials of its own.
"""

import logging

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

# Load .env before msg_grants; Ruff E402.
from msg_grants import create_grants_router  # noqa: E402
from msg_grants.config import log_level  # noqa: E402

logging.basicConfig(level=getattr(logging, log_level(), logging.WARNING))

app = FastAPI(title="msg-grants")
app.include_router(create_grants_router())


@app.get("/")
async def home():
    return {"ok": True, "service": "msg-grants"}

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
import logging

# Disable automatic _created metrics to reduce noise
os.environ['PROMETHEUS_DISABLE_CREATED_SERIES'] = 'True'

# Configure basic logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("artshare")

app = FastAPI(title="Art Share Media API", version="0.1.0")

# Add CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js dev server
        os.getenv("FRONTEND_URL", "http://localhost:3000")
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Route Registration
# ============================================================================
from apps.api.routes import admin, auth, health, portfolios, uploads

# Health and metrics routes (root level)
app.include_router(health.router)

# Identity (/auth/me)
app.include_router(auth.router)

# Portfolio media (/portfolios/*)
app.include_router(portfolios.router)

# Moderation and maintenance (/admin/*)
app.include_router(admin.router)

# Local file serving (/uploads/*)
app.include_router(uploads.router)

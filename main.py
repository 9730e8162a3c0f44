"""
PhishShield
FastAPI-based phishing scanner for message text and URLs with threat intelligence enrichment

Entry point: python main.py
"""

import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from phishshield.core.config import APP_VERSION, settings
from phishshield.api.routes import health, messages, protection_settings, scan
from phishshield.utils.startup import initialize_system

# Create FastAPI application
app = FastAPI(
    title="PhishShield",
    description="Rule-based phishing detection for messages and links with cached threat intelligence",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# Rate limiter shared with the scan routes
app.state.limiter = scan.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses"""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
    if not settings.DEBUG:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.on_event("startup")
async def startup_event():
    """Initialize system components on startup"""
    print("=" * 70)
    print(f"PhishShield v{APP_VERSION}")
    print("=" * 70)

    await initialize_system(app)

    print("=" * 70)
    print(f"System ready! Server running on {settings.SERVER_URL}")
    print(f"API Docs: {settings.SERVER_URL}/api/docs")
    print("=" * 70)


# Include API routes
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(scan.router, prefix="/api", tags=["Scan"])
app.include_router(messages.router, prefix="/api", tags=["Scan History"])
app.include_router(protection_settings.router, prefix="/api", tags=["Protection Settings"])


if __name__ == "__main__":
    # Run the server (PORT env var for hosted deployment)
    port = int(os.environ.get("PORT", settings.PORT))
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=port,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL
    )

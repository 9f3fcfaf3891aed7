from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import uvicorn
from sqlalchemy import text

# Import routers
from starcheckin.api.routes import attendees, events, health, live, oauth, webhook
from starcheckin.core.config import settings
from starcheckin.core.logging import setup_logging
from starcheckin.db.base import Base
from starcheckin.db.session import SessionLocal, engine
from starcheckin.models import attendee, token  # noqa: F401  (register tables)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    # Startup
    logger.info("🚀 Starting Star Check-In backend...")

    # Create database tables
    logger.info("📦 Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Test database connection
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise

    yield

    # Shutdown
    logger.info("👋 Shutting down...")

# Create FastAPI app
app = FastAPI(
    title="Star Check-In Backend",
    description="Eventbrite attendee sync with live updates for the check-in app",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(oauth.router, tags=["OAuth"])
app.include_router(events.router, tags=["Events"])
app.include_router(attendees.router, tags=["Attendees"])
app.include_router(webhook.router, tags=["Webhook"])
app.include_router(live.router, tags=["Live Updates"])

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "exchange_token": "/exchange_token",
            "events": "/events",
            "attendees": "/attendees/{event_id}",
            "local_attendees": "/local_attendees",
            "webhook": "/webhook",
            "live_updates": "/ws"
        }
    }

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, reload=False)

# FastAPI entrypoint for the access roles service

from fastapi import APIRouter, FastAPI
from loguru import logger
import dotenv

from accessroles.config import configure_logging, load_settings
from apps.api.accessroles_routes import router as accessroles_router
from apps.api.schemas import HealthResponse
from storage.database import DatabaseManager

dotenv.load_dotenv()

# Initialize FastAPI app
app = FastAPI(
    title="Access Roles API",
    description="Role based access control for a hierarchical node tree",
    version="1.0.0"
)

router = APIRouter(tags=["base"])


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint for monitoring system status."""
    database = DatabaseManager.health_check()
    return HealthResponse(status="healthy" if database else "unhealthy", database=database)


app.include_router(router)              # /health
app.include_router(accessroles_router)  # /api/nodes

# ==================== STARTUP EVENTS ====================

@app.on_event("startup")
async def startup_event():
    """Initialize on startup."""
    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        logger.info("Initializing tree database...")
        DatabaseManager.initialize()
        logger.info("Tree database initialized and root node present")
    except Exception as e:
        logger.error(f"Tree database init failed: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    DatabaseManager.dispose()

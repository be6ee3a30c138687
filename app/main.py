import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes.extract import router as extract_router
from app.api.routes.health import router as health_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.services.rules.rule_engine import RuleEngine
from app.state import global_state

# logging first, before the app is created
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting document mapping service (env=%s)...", settings.app_env)
    global_state.rule_engine = RuleEngine(
        default_page_width=settings.default_page_width,
        default_page_height=settings.default_page_height,
    )
    logger.info("System ready!")
    yield
    logger.info("Shutting down service...")
    global_state.rule_engine = None


app = FastAPI(title="Document Mapping Service", lifespan=lifespan)

app.include_router(health_router, prefix="/api")
app.include_router(extract_router, prefix="/api")

from fastapi import FastAPI
import uvicorn
import logging
from contextlib import asynccontextmanager

from app.api.middleware import setup_middlewares
from app.api.router import router
from app.config import settings
from app.core.database import db_manager
from app.core.events import BULK_EXECUTION_COMPLETED, Event, event_bus
from app.core.logging import setup_logging


setup_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)
logger = logging.getLogger(__name__)


def log_bulk_execution(event: Event):
    payload = event.payload
    logger.info(
        f"📣 Bulk execution finished: {payload.get('crossSellingsCreated', 0)} created, "
        f"{payload.get('productsSkipped', 0)} skipped, {len(payload.get('errors', []))} errors"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Démarrage de l'application...")

    db_manager.create_tables()
    event_bus.subscribe(BULK_EXECUTION_COMPLETED, log_bulk_execution)
    if not settings.shopware_configured:
        logger.warning("⚠️ Shopware n'est pas configuré: les exécutions échoueront (503)")

    yield

    logger.info("🔄 Arrêt de l'application...")
    event_bus.unsubscribe(BULK_EXECUTION_COMPLETED, log_bulk_execution)
    logger.info("✅ Application arrêtée proprement")

app = FastAPI(
    title=settings.APP_NAME,
    description="API de règles de cross-selling et d'exécution groupée sur le catalogue Shopware",
    version="1.0.0",
    lifespan=lifespan
)

setup_middlewares(app)
app.include_router(router)


if __name__ == "__main__":
    url = "http://localhost:8000/docs"
    print(f"🚀 {settings.APP_NAME} démarrée !")
    print(f"📚 Documentation : {url}")
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)

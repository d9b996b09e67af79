from fastapi import APIRouter
from app.api.v1 import rules, products
from app.config import settings

router = APIRouter()

router.include_router(rules.router, prefix="/api")
router.include_router(products.router, prefix="/api")


@router.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "rules": "/api/cross-selling-rules"
    }


@router.get("/health")
async def health():
    return {"status": "healthy", "shopware_configured": settings.shopware_configured}

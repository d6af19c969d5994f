from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import settings
from storefront.routers import admin, payments, user

OPENAPI_TAGS = [
    {
        "name": "Payment",
        "description": "Coupons, payment intents, order saving and gateway webhooks.",
    },
    {"name": "User", "description": "Shopper order placement and active coupons."},
    {"name": "Admin", "description": "Manage coupons and orders."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Storefront checkout API. Applies coupons, creates Stripe payment intents, "
        "saves paid orders and reconciles them from gateway webhooks."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments.router, prefix="/api/payment", tags=["Payment"])
app.include_router(user.router, prefix="/api/user", tags=["User"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }

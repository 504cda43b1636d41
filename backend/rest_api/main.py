"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from rest_api.core import configure_cors, lifespan, register_middlewares
from rest_api.routers.diner import bill_router, cart_router, orders_router, splits_router
from rest_api.routers.kitchen import kitchen_router
from rest_api.routers.public import health_router, menu_router
from rest_api.routers.tables import sessions_router


app = FastAPI(
    title="Table Share API",
    description="Shared table sessions: cart, split bills, kitchen orders and billing",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middlewares (last registered runs first)
register_middlewares(app)
configure_cors(app)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(menu_router)
app.include_router(sessions_router)
app.include_router(cart_router)
app.include_router(splits_router)
app.include_router(orders_router)
app.include_router(kitchen_router)
app.include_router(bill_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )

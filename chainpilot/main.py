from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import actions, cards, contracts, health, session
from .config import settings
from .logging_config import setup_logging
from .services.wallet import shutdown_wallet_runtime

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cancels in-flight watchers and closes RPC clients
    await shutdown_wallet_runtime()


# Create FastAPI app
app = FastAPI(
    title="ChainPilot API",
    description="Conversational wallet backend: prepare, confirm and track EVM transactions",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(actions.router, tags=["Actions"])
app.include_router(session.router, tags=["Session"])
app.include_router(cards.router, tags=["Cards"])
app.include_router(contracts.router, tags=["Contracts"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "ChainPilot API",
        "version": "0.1.0",
        "description": "Conversational wallet backend: prepare, confirm and track EVM transactions",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chainpilot.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanbroker import __version__
from scanbroker.core.config import get_settings
from scanbroker.core.logging import configure_logging
from scanbroker.core.router_loader import discover_routers

logger = logging.getLogger(__name__)
config = get_settings()
prefix = config.api_prefix


@asynccontextmanager
async def lifespan(app: FastAPI):
	"""Application lifespan handler for startup/shutdown events."""
	logger.info("Starting scanbroker API server...")
	yield
	logger.info("Shutting down scanbroker API server...")


app = FastAPI(
	title="Scanbroker REST API",
	version=__version__,
	lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition",
        "Content-Type",
        "Content-Length",
    ]
)

# Auto-discover and register all feature routers
features_path = Path(__file__).parent / "core" / "features"
routers = discover_routers(features_path)

for router, feature_name in routers:
    app.include_router(router, prefix=prefix)


@app.get(f"{prefix}/version", tags=["Version"])
async def version():
	return {"version": __version__}


configure_logging(config.log_config)

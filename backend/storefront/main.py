import logging
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager

from storefront.config import Config
from storefront.db.database import Database
from storefront.routers import health, trpc, upload
from storefront.services.image_service import ImageStore
from storefront.exceptions import (
    RPCError,
    generic_exception_handler,
    rpc_exception_handler,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Path(Config.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    db = Database(Config.DATABASE_URL)
    await db.connect()
    if Config.CREATE_TABLES:
        await db.create_tables()
    logger.info("Database connected")

    app.state.db = db
    app.state.images = ImageStore()
    app.state.image_failure_policy = Config.IMAGE_FAILURE_POLICY
    yield
    await db.disconnect()


app = FastAPI(
    title="Storefront API",
    version="1.0.0",
    description="Product and order RPC backend for the storefront",
    lifespan=lifespan
)

# Register exception handlers
app.add_exception_handler(RPCError, rpc_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(trpc.router)
app.include_router(upload.router)

# Saved product images
app.mount(Config.UPLOAD_URL_PREFIX, StaticFiles(directory=Config.UPLOAD_DIR, check_dir=False), name="uploads")

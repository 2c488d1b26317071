import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blogsphere.cache import cache
from blogsphere.config import settings
from blogsphere.errors import BlogsphereError, blogsphere_error_handler
from blogsphere.middleware import RequestMetricsMiddleware
from blogsphere.routers import auth, blogs, metrics, notifications, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; the app keeps serving without Redis
    await cache.connect()
    logger.info("blogsphere started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Blogsphere API",
    description="Blogging platform backend: accounts, blogs, likes, comments and notifications",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(BlogsphereError, blogsphere_error_handler)

# Routers
app.include_router(auth.router)
app.include_router(blogs.router)
app.include_router(users.router)
app.include_router(notifications.router)
app.include_router(metrics.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}

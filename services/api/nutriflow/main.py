# NutriFlow API Main Entry Point
import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .settings import settings
from .routers.ready import router as ready_router
from .routers.practitioners import router as practitioners_router
from .routers.plans import router as plans_router
from .routers.recipes import router as recipes_router
from .routers.templates import router as templates_router
from .routers.shopping_lists import router as shopping_lists_router
from .routers.progress import router as progress_router

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("nutriflow")

# Rate limiter (per-IP)
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])

app = FastAPI(title="NutriFlow API", version="0.1.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ready_router, prefix="/api", tags=["ready"])
app.include_router(practitioners_router, prefix="/api", tags=["practitioners"])
app.include_router(plans_router, prefix="/api", tags=["plans"])
app.include_router(recipes_router, prefix="/api", tags=["recipes"])
app.include_router(templates_router, prefix="/api", tags=["templates"])
app.include_router(shopping_lists_router, prefix="/api", tags=["shopping-lists"])
app.include_router(progress_router, prefix="/api", tags=["progress"])

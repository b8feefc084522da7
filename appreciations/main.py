import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware

package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

# Import after dotenv is loaded
from appreciations.api import (  # noqa: E402
    appreciations as appreciations_api,
    billing,
    catalog,
    credits,
    health,
    preferences,
    promo,
)
from appreciations.core.config import settings, validate_config  # noqa: E402
from appreciations.core.database import create_all_tables  # noqa: E402
from appreciations.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from appreciations.core.logging import LOGGER_NAME, configure_logging  # noqa: E402
from appreciations.core.middleware.ratelimit import RateLimitMiddleware  # noqa: E402
from appreciations.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from appreciations.core.validation import validate_env  # noqa: E402

configure_logging(settings.ENV)
validate_env()
validate_config(strict=settings.CONFIG_STRICT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Starting appreciations API...")
    app.state.startup_time = time.time()
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping appreciations API...")


app = FastAPI(title="Appreciations API", lifespan=lifespan)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.root_router)
app.include_router(health.router)
app.include_router(catalog.router)
app.include_router(credits.router)
app.include_router(preferences.router)
app.include_router(appreciations_api.router)
app.include_router(promo.router)
app.include_router(promo.admin_router)
app.include_router(billing.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("appreciations.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)

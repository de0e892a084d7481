import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.analysis import router as analysis_router
from app.api.v1.documents import router as documents_router
from app.api.v1.features import router as features_router
from app.api.v1.keywords import router as keywords_router
from app.api.v1.payments import router as payments_router
from app.api.v1.recruiter import router as recruiter_router
from app.api.v1.resumes import router as resumes_router
from app.api.v1.system import router as system_router
from app.api.v1.templates import router as templates_router
from app.api.v1.users import router as users_router
from app.core.rate_limit import limiter
from app.core.config import settings
from app.core.lifespan import lifespan
from app.services.errors import ServiceError

logging.basicConfig(level=settings.log_level, format="%(message)s")
logger = logging.getLogger(__name__)
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Resume Builder API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=(settings.cors_allow_origin_regex or "").strip() or None,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("service_error path=%s status=%s: %s", request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


app.include_router(system_router, prefix="/v1", tags=["System"])
app.include_router(users_router, prefix="/v1", tags=["Users"])
app.include_router(features_router, prefix="/v1", tags=["Features"])
app.include_router(resumes_router, prefix="/v1", tags=["Resumes"])
app.include_router(analysis_router, prefix="/v1", tags=["Analysis"])
app.include_router(documents_router, prefix="/v1", tags=["Documents"])
app.include_router(keywords_router, prefix="/v1", tags=["Keywords"])
app.include_router(templates_router, prefix="/v1", tags=["Templates"])
app.include_router(payments_router, prefix="/v1", tags=["Payments"])
app.include_router(recruiter_router, prefix="/v1", tags=["Recruiter"])

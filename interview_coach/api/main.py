import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from interview_coach.api.exceptions import (
    quota_exceeded_handler,
    storage_exception_handler,
    subscription_exception_handler,
    user_not_found_handler,
)
from interview_coach.api.middleware import (
    ExceptionHandlingMiddleware,
    RequestIDMiddleware,
    UpstreamIdentityMiddleware,
)
from interview_coach.api.routes import performance, questions, subscriptions, usage
from interview_coach.core.logging import init_logging
from interview_coach.core.services.exceptions import QuotaExceededError, SubscriptionError, UserNotFoundError
from interview_coach.core.storage import StorageError

app = FastAPI(
    title="Interview Coach API",
    description="Adaptive interview practice with daily prompt quotas",
    version="1.0.0",
)

# Initialize structured logging for the API server
init_logging(
    level=os.getenv("INTERVIEW_COACH_LOG_LEVEL", "INFO"),
    fmt=os.getenv("INTERVIEW_COACH_LOG_FORMAT", "json"),
    file_path=os.getenv("INTERVIEW_COACH_LOG_FILE"),
    mask=os.getenv("INTERVIEW_COACH_LOG_MASK", "false").lower() in ("true", "1", "yes", "on"),
    use_stderr=True,
)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-ID", "X-Request-ID"],
    expose_headers=["Retry-After", "X-Request-ID"],
    max_age=86400,
)

# Identity sits inside the request id middleware so rejected requests still carry an id
app.add_middleware(UpstreamIdentityMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(ExceptionHandlingMiddleware)

app.include_router(usage.router, prefix="/api/v1")
app.include_router(subscriptions.router, prefix="/api/v1")
app.include_router(performance.router, prefix="/api/v1")
app.include_router(questions.router, prefix="/api/v1")

app.add_exception_handler(QuotaExceededError, quota_exceeded_handler)
app.add_exception_handler(SubscriptionError, subscription_exception_handler)
app.add_exception_handler(UserNotFoundError, user_not_found_handler)
app.add_exception_handler(StorageError, storage_exception_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"type": "validation", "message": error["msg"], "field": ".".join(str(x) for x in error["loc"])}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "validation_failed", "message": "Request validation failed", "details": details},
    )


@app.get("/")
async def root():
    return {"message": "Interview Coach API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

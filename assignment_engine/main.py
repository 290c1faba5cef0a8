import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from assignment_engine.core.errors import AssignmentError
from assignment_engine.core.logging_middleware import LoggingMiddleware
from assignment_engine.db.init_db import init_db
from assignment_engine.routers.assignments import router as assignments_router
from assignment_engine.routers.auth import router as auth_router
from assignment_engine.routers.courses import router as courses_router
from assignment_engine.routers.enrollments import router as enrollments_router
from assignment_engine.routers.extensions import router as extensions_router
from assignment_engine.routers.submissions import router as submissions_router

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title="Assignment Engine")

# Middleware
app.add_middleware(LoggingMiddleware)


@app.exception_handler(AssignmentError)
def assignment_error_handler(request: Request, exc: AssignmentError):
    logger.info(
        "[%s] %s %s refused: %s (%s)",
        getattr(request.state, "request_id", "-"),
        request.method,
        request.url.path,
        exc.code.value,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(courses_router, prefix="/courses", tags=["courses"])
app.include_router(enrollments_router, prefix="/enrollments", tags=["enrollments"])
app.include_router(assignments_router, tags=["assignments"])
app.include_router(extensions_router, tags=["extensions"])
app.include_router(submissions_router, tags=["submissions"])

# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from surveyhub.app.core.config import settings
from surveyhub.app.core.errors import StoreBusyError, StoreIntegrityError, SurveyHubError, ValidationError
from surveyhub.app.core.logging import get_logs_writer_logger
from surveyhub.app.routers import responses, student, surveys, teacher
from surveyhub.db import Base
from surveyhub.db.session import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_logs_writer_logger()
    Base.metadata.create_all(bind=engine)
    logger.info("Starting %s", settings.APP_NAME)
    yield
    logger.info("Shutting down")


app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)

app.include_router(surveys.router)
app.include_router(responses.router)
app.include_router(teacher.router)
app.include_router(student.router)


@app.exception_handler(SurveyHubError)
async def surveyhub_error_handler(request: Request, exc: SurveyHubError):
    if isinstance(exc, (StoreBusyError, StoreIntegrityError)):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": ".".join(str(part) for part in err["loc"] if part != "body"), "msg": err["msg"]}
        for err in exc.errors()
    ]
    error = ValidationError("Request is malformed", details=details)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")

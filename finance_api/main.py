from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from finance_api.api.routes import router as api_router
from finance_api.core.config import AppConfig, get_settings
from finance_api.core.errors import InvalidInput, ReportError
from finance_api.db.session import init_db
from finance_api.schemas.reports import ErrorResponse

app_config = AppConfig()
settings = get_settings()
app = FastAPI(title=app_config.description, version=app_config.version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
    body = ErrorResponse(kind=exc.kind, message=exc.message)
    if exc.status_code >= 500:
        logger.error("Report request failed", kind=exc.kind, path=request.url.path, error=exc.message)
        body.message = "Server error generating report"
        if get_settings().is_development:
            body.error = str(exc.cause or exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(error["loc"][-1]) for error in exc.errors() if error.get("loc")})
    message = "Missing or invalid parameters"
    if fields:
        message = f"{message}: {', '.join(fields)}"
    logger.info("Rejected report request", path=request.url.path, fields=fields)
    body = ErrorResponse(kind=InvalidInput.kind, message=message)
    return JSONResponse(status_code=InvalidInput.status_code, content=body.model_dump(exclude_none=True))


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} up", "version": app_config.version}

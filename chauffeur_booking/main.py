from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chauffeur_booking.api.routes import bookings, payments
from chauffeur_booking.core.errors import AppError
from chauffeur_booking.core.logging_config import get_logger
import chauffeur_booking.db.base  # noqa: F401  registers every model

logger = get_logger()

app = FastAPI(
    title="Chauffeur Booking API",
    version="1.0.0",
    description="Car-with-chauffeur bookings, extensions and payment reconciliation"
)


# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url} -> {str(e)}")
        raise e


# -------- ERROR RENDERING --------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {request.url} -> {exc.message}")
    else:
        logger.info(f"{exc.code}: {request.url} -> {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_problem())


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bookings.router)
app.include_router(payments.router)


@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}

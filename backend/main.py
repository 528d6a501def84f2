# backend/main.py
import logging
import traceback

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

load_dotenv()

from config import settings
from database import init_db

# Router imports
from routes.orders import router as orders_router
from routes.coupons import router as coupons_router
from routes.cart import router as cart_router
from routes.stock import router as stock_router
from routes.logs import router as logs_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialization
init_db()

app = FastAPI(title="Clothing Store API", version="1.0.0")

# CORS: local React dev server plus the configured frontend
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Malformed request bodies are client errors (400), not 422
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"detail": "Internal server error", "error": str(exc)}
    if settings.ENVIRONMENT != "production":
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


# Router registration
app.include_router(orders_router)
app.include_router(coupons_router)
app.include_router(cart_router)
app.include_router(stock_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Clothing Store API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}

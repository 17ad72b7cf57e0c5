from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from coupon_app.config import settings
from coupon_app.database import engine
from coupon_app.exceptions import CouponError
from coupon_app.logger import get_logger
from coupon_app.models import coupon as coupon_model
from coupon_app.routers import coupons as coupons_router
from coupon_app.services.strategy_registry import default_registry

logger = get_logger("http")

# Create database tables
coupon_model.Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Coupons Management API",
    description="RESTful API to manage coupons and evaluate them against shopping carts",
    version="2.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(coupons_router.router)


@app.get("/health")
def health():
    return {"status": "healthy", "coupon_types": default_registry.supported_types()}


def _error(status_code: int, title: str, detail, request: Request, **extra) -> JSONResponse:
    body = {"status_code": status_code, "title": title, "detail": detail, "path": request.url.path}
    body.update(extra)
    return JSONResponse(status_code=status_code, content={"error": jsonable_encoder(body)})


@app.exception_handler(CouponError)
async def coupon_error_handler(request: Request, exc: CouponError):
    logger.warning("%s: %s", exc.title, exc.detail)
    return _error(exc.status_code, exc.title, exc.detail, request)


# Proper JSON error with correct status code
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, "HTTP Error", exc.detail, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation failed on %s", request.url.path)
    return _error(422, "Validation Failed", "Input validation failed", request,
                  validation_errors=exc.errors())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unexpected error occurred", exc_info=exc)
    return _error(500, "Internal Server Error",
                  "An unexpected error occurred. Please try again later.", request)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("coupon_app.main:app", host=settings.host, port=settings.port, reload=True)

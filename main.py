from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import os
from dotenv import load_dotenv

from db.database import Base, engine, SessionLocal
import model.usermodels  # noqa: F401
import model.business_model  # noqa: F401
import model.leave_model  # noqa: F401
import model.notification_model  # noqa: F401
import model.subscription_model  # noqa: F401
from seed_data import seed_notification_templates

from router.auth_router import router as auth_router
from router.leave_management_router import router as leave_management_router
from router.notification_router import router as notification_router
from router.stripe_router import router as stripe_router
from router.subscription_router import router as subscription_router
from router.business_router import router as business_router

load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Read CORS origins from environment variables
FRONTEND_URL = os.getenv("FRONTEND_URL", "")

# Parse comma-separated origins and create list
allowed_origins = [origin.strip() for origin in FRONTEND_URL.split(",") if origin.strip()]

# Remove duplicates while preserving order
allowed_origins = list(dict.fromkeys(allowed_origins))

# If no origins configured, allow localhost for development
if not allowed_origins:
    allowed_origins = ["http://localhost:3000", "http://localhost:8000"]

logger.info(f"Allowed CORS Origins: {allowed_origins}")


app = FastAPI(
    title="CloudLeave API",
    description="Multi-tenant leave management API.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)

session = SessionLocal()
try:
    seed_notification_templates(session)
except Exception as e:
    session.rollback()
    logger.error(f"Failed to seed notification templates: {str(e)}")
finally:
    session.close()


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", []) if part != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Routes
@app.get("/")
def read_root():
    return {"message": "Welcome to the CloudLeave API!"}


#  All Routes are Declared here
app.include_router(auth_router, tags=["Auth"])
app.include_router(leave_management_router, tags=["Leave Management"])
app.include_router(notification_router, tags=["Notifications"])
app.include_router(stripe_router, tags=["Stripe"])
app.include_router(subscription_router, tags=["Subscription"])
app.include_router(business_router, tags=["Business"])

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import Base, clm_engine
from shared.helpers.exception_handler import setup_exception_handlers
from shared.wrappers.response_wrapper import JsonResponseMiddleware
from .models.contracts import contracts, contract_approvals
from .models.system import audit_logs
from .router.contracts import contracts_router, contract_approvals_router
from .router.system import audit_logs_router

logging.basicConfig(level=settings.LOG_LEVEL)

# Create all tables
Base.metadata.create_all(bind=clm_engine)

app = FastAPI(title="Contract Lifecycle Service API")

origins = [origin.strip()
           for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(JsonResponseMiddleware)

# Register exception handlers
setup_exception_handlers(app)

# Include routers
app.include_router(contracts_router.router)
app.include_router(contract_approvals_router.router)
app.include_router(audit_logs_router.router)


@app.get("/api/health")
def health():
    return {"status": "healthy"}

"""
CDS Hooks Service - FastAPI Application

Smart reminders and alerts for the 御管轉診平台 dashboard.

Endpoints:
- GET  /cds-services                 service discovery
- POST /cds-services/patient-view    smart-alert cards for a patient chart
- POST /cds-services/order-select    order-selection reminders (none registered yet)
- GET  /health                       health check
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ltc888 import __version__
from ltc888.config import settings
from ltc888.core.cds import SMART_ALERT_SERVICES, create_smart_alert_service
from ltc888.models import CDSRequest, CDSServicesResponse, HealthResponse
from ltc888.utils import get_logger, setup_logging

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

SERVICE_NAME = "CDS Hooks Service"

# ---- CDS Hooks Service Singleton ----
_cds_service = create_smart_alert_service(base_url=settings.base_url)


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"{SERVICE_NAME} ready: hooks={sorted(_cds_service.hooks)} base_url={_cds_service.base_url}"
    )
    yield
    logger.info(f"{SERVICE_NAME} shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title="LTC888 CDS Hooks Service",
    description="御管轉診平台 - 智慧提醒與警示 (HL7 CDS Hooks)",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- API Endpoints ----

@app.get("/cds-services", response_model=CDSServicesResponse, tags=["CDS Hooks"])
async def discovery():
    """List the hooks this service answers, with their prefetch templates."""
    return {"services": SMART_ALERT_SERVICES}


@app.post("/cds-services/{hook}", tags=["CDS Hooks"])
async def call_hook(hook: str, request: CDSRequest):
    """
    Evaluate a hook and return `{"cards": [...]}`.

    Handler failures come back as a critical card, not an HTTP error.
    """
    context = request.context or {}
    prefetch = request.prefetch or {}
    logger.info(
        f"Received {hook} hook: hookInstance={request.hookInstance} "
        f"patientId={context.get('patientId')} userId={context.get('userId')}"
    )
    try:
        response = await _cds_service.handle_hook(hook, context, prefetch)
        body = response.to_dict()
    except Exception as e:
        logger.error(f"{hook} hook failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "處理請求時發生錯誤", "message": str(e)})

    logger.info(f"Returning {len(body['cards'])} card(s) for {hook}")
    return body


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)

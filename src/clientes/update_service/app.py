"""
FastAPI Application - Update Client Service
"""
from fastapi import APIRouter, FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

# Importar módulos locales
from .config import Settings, get_settings
from .dynamo_client import DynamoClientStore
from .errors import ClientNotFoundError, DatastoreError, PublishError, SecretFetchError
from .models import (
    CredentialBundle,
    UpdateClientRequest, UpdateClientResponse, UpdateClientErrorResponse,
    HealthCheckResponse, HealthStatus
)
from .orchestrator import ClientUpdateOrchestrator
from .pulsar_client import ClientEventPublisher
from .secrets_client import LambdaSecretsClient

# Configurar logging
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


# Dependencies
def get_orchestrator(request: Request) -> ClientUpdateOrchestrator:
    """Obtener el orquestador creado en el arranque"""
    return request.app.state.orchestrator


def get_publisher(request: Request) -> Optional[ClientEventPublisher]:
    """Obtener el publisher de Pulsar (None si el arranque no llegó a crearlo)"""
    return getattr(request.app.state, "publisher", None)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


health_router = APIRouter(prefix="/health", tags=["health"])
clients_router = APIRouter(prefix="/clients", tags=["clients"])


# Health Check Endpoints
@health_router.get("", response_model=HealthCheckResponse)
async def health_check(
    settings: Settings = Depends(get_app_settings),
    publisher: Optional[ClientEventPublisher] = Depends(get_publisher)
):
    """Health check endpoint"""
    checks = {}
    overall_status = HealthStatus.HEALTHY

    if publisher:
        pulsar_health = publisher.get_health_status()
        checks["pulsar"] = pulsar_health
        if not pulsar_health["connected"]:
            overall_status = HealthStatus.DEGRADED
    else:
        checks["pulsar"] = {"status": "not_connected"}
        overall_status = HealthStatus.DEGRADED

    return HealthCheckResponse(
        service_name=settings.service_name,
        status=overall_status,
        version=settings.service_version,
        timestamp=datetime.now(timezone.utc),
        checks=checks
    )


@health_router.get("/ready")
async def readiness_check():
    """Readiness check para Kubernetes"""
    return {"status": "ready"}


@health_router.get("/live")
async def liveness_check():
    """Liveness check para Kubernetes"""
    return {"status": "alive"}


@clients_router.put(
    "/{ci}",
    response_model=UpdateClientResponse,
    responses={
        404: {"model": UpdateClientErrorResponse, "description": "Client not found"},
        500: {"model": UpdateClientErrorResponse, "description": "Error updating client"},
    },
)
async def update_client(
    ci: str,
    request_data: UpdateClientRequest,
    settings: Settings = Depends(get_app_settings),
    orchestrator: ClientUpdateOrchestrator = Depends(get_orchestrator)
):
    """
    Actualizar un cliente existente por CI

    - **firstName**, **lastName**, **phone**, **address**: campos a actualizar
    """
    if settings.partial_updates and not request_data.to_fields(partial=True):
        raise HTTPException(status_code=422, detail="At least one field is required")

    result = await orchestrator.update_client(ci, request_data)
    return UpdateClientResponse(message="Client updated", result=result)


async def client_not_found_handler(request: Request, exc: ClientNotFoundError):
    logger.warning(f"Cliente no encontrado: {exc.ci}")
    return JSONResponse(
        status_code=404,
        content=UpdateClientErrorResponse(message="Client not found", error=str(exc)).model_dump()
    )


async def datastore_error_handler(request: Request, exc: DatastoreError):
    logger.error(f"Error updating client: {exc}")
    return JSONResponse(
        status_code=500,
        content=UpdateClientErrorResponse(message="Error updating client", error=str(exc)).model_dump()
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Manejo global de excepciones"""
    trace_id = str(uuid.uuid4())
    logger.error(f"Global exception [trace_id: {trace_id}]: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=UpdateClientErrorResponse(message="Internal server error", error=trace_id).model_dump()
    )


def create_app(
    settings: Optional[Settings] = None,
    secrets_client: Optional[LambdaSecretsClient] = None,
    store_factory: Optional[Callable[[Settings, CredentialBundle], DynamoClientStore]] = None,
    publisher: Optional[ClientEventPublisher] = None,
) -> FastAPI:
    """
    Construir la aplicación.

    El arranque es secuencial: secretos, DynamoDB, Pulsar. Si los secretos no
    se pueden obtener el lifespan falla y el servicio no acepta tráfico.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gestión del ciclo de vida de la aplicación"""
        logger.info("🚀 Iniciando Update Client Service...")

        client = secrets_client or LambdaSecretsClient(settings)
        try:
            credentials = await asyncio.to_thread(client.fetch_credentials)
        except SecretFetchError as e:
            logger.error(f"❌ Error starting service: {e}")
            raise

        store = (store_factory or DynamoClientStore.from_credentials)(settings, credentials)

        event_publisher = publisher or ClientEventPublisher(settings)
        try:
            await event_publisher.connect()
        except PublishError as e:
            logger.error(f"❌ Pulsar no disponible al arrancar: {e}")
        event_publisher.start(supervise=settings.reconnect_enabled)

        app.state.publisher = event_publisher
        app.state.orchestrator = ClientUpdateOrchestrator(
            store, event_publisher, partial_updates=settings.partial_updates
        )
        logger.info(f"✅ Update Client Service escuchando en el puerto {settings.port}")

        yield

        # Shutdown
        logger.info("🛑 Cerrando Update Client Service...")
        await event_publisher.stop()
        await event_publisher.disconnect()
        logger.info("✅ Update Client Service cerrado correctamente")

    app = FastAPI(
        title="Update Client Service API",
        description="API for updating clients",
        version=settings.service_version,
        docs_url="/api-docs",
        lifespan=lifespan
    )
    app.state.settings = settings

    # Configurar CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClientNotFoundError, client_not_found_handler)
    app.add_exception_handler(DatastoreError, datastore_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health_router)
    app.include_router(clients_router)

    @app.get("/")
    async def root():
        """Información básica del servicio"""
        return {
            "message": "Update Client Service Running",
            "service": settings.service_name,
            "version": settings.service_version,
            "endpoints": {
                "update_client": "PUT /clients/{ci}",
                "health": "/health",
                "docs": "/api-docs"
            }
        }

    return app


app = create_app()

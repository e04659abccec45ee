"""
Configuración del servicio de actualización de clientes
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuración del Update Client Service"""

    # Información del servicio
    service_name: str = "update-client-service"
    service_version: str = "1.0.0"

    # FastAPI settings
    host: str = "0.0.0.0"
    port: int = 8096
    debug: bool = False
    log_level: str = "INFO"

    # Security
    allowed_origins: List[str] = ["*"]

    # AWS
    aws_region: str = "us-east-2"
    secrets_function_name: str = "fetchSecretsFunction_gr8"
    clients_table_name: str = "ClientsUpdate_gr8"
    require_existing_client: bool = False
    partial_updates: bool = True

    # Pulsar configuration
    pulsar_url: str = "pulsar://localhost:6650"
    client_events_topic: str = "persistent://public/default/client-events"
    connection_timeout_ms: int = 10000
    operation_timeout_seconds: int = 30
    producer_send_timeout_ms: int = 5000

    # Reintentos del publisher
    publisher_retry_buffer_size: int = 1000
    reconnect_enabled: bool = True
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0

    model_config = {
        "env_prefix": "UPDATE_CLIENT_",
        "case_sensitive": False
    }


# Instancia global de configuración
settings = Settings()


def get_settings() -> Settings:
    """Obtener configuración (útil para dependency injection en FastAPI)"""
    return settings

"""
Modelos Pydantic para validación de requests/responses y eventos
"""
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class HealthStatus(str, Enum):
    """Estados de salud del servicio"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CredentialBundle(BaseModel):
    """Credenciales AWS obtenidas desde la Lambda de secretos"""
    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_access_key: SecretStr


class UpdateClientRequest(BaseModel):
    """Request para actualizar un cliente"""
    model_config = ConfigDict(extra="forbid")

    firstName: Optional[str] = Field(None, description="Nombre del cliente")
    lastName: Optional[str] = Field(None, description="Apellido del cliente")
    phone: Optional[str] = Field(None, description="Teléfono del cliente")
    address: Optional[str] = Field(None, description="Dirección del cliente")

    def to_fields(self, partial: bool = True) -> Dict[str, Optional[str]]:
        """
        Campos a escribir en DynamoDB.

        En modo parcial solo se incluyen los campos enviados con valor; en modo
        completo se incluyen los cuatro, aunque vengan vacíos.
        """
        if partial:
            return self.model_dump(exclude_none=True)
        return self.model_dump()


class ClientUpdatedEvent(BaseModel):
    """Evento de dominio emitido tras una actualización exitosa"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: str = Field("ClientUpdated", alias="eventType")
    data: Dict[str, Optional[str]]

    def to_message(self) -> bytes:
        """Serializar como JSON {eventType, data} para Pulsar"""
        return self.model_dump_json(by_alias=True).encode("utf-8")


class UpdateClientResponse(BaseModel):
    """Response al actualizar un cliente"""
    message: str = Field(..., description="Mensaje descriptivo")
    result: Dict[str, Any] = Field(..., description="Valores actualizados devueltos por DynamoDB")


class UpdateClientErrorResponse(BaseModel):
    """Response de error al actualizar un cliente"""
    message: str
    error: str


class HealthCheckResponse(BaseModel):
    """Response del health check"""
    service_name: str
    status: HealthStatus
    version: str
    timestamp: datetime
    checks: Dict[str, Any] = Field(default_factory=dict)

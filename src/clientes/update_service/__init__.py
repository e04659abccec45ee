"""
Update Client Service
=====================

Microservicio Python (FastAPI) que actualiza clientes y notifica el cambio.

Responsabilidades:
- Obtener las credenciales AWS desde una Lambda de secretos al arrancar
- Actualizar el registro del cliente en DynamoDB
- Publicar el evento ClientUpdated en un topic persistente de Apache Pulsar
- Proveer endpoints para health checks

Patrones aplicados:
- Event-driven architecture
- Fail-fast en el arranque
- Publicación best-effort con buffer de reintentos y reconexión supervisada
"""

from .app import app, create_app, health_router, clients_router
from .config import Settings
from .orchestrator import ClientUpdateOrchestrator
from .pulsar_client import ChannelState, ClientEventPublisher
from .models import ClientUpdatedEvent, UpdateClientRequest, UpdateClientResponse

__all__ = [
    'app',
    'create_app',
    'health_router',
    'clients_router',
    'Settings',
    'ClientUpdateOrchestrator',
    'ChannelState',
    'ClientEventPublisher',
    'ClientUpdatedEvent',
    'UpdateClientRequest',
    'UpdateClientResponse'
]

"""
Orquestador de la actualización de clientes: DynamoDB primero, evento después
"""
import asyncio
import logging
from typing import Any, Dict

from .dynamo_client import DynamoClientStore
from .models import ClientUpdatedEvent, UpdateClientRequest
from .pulsar_client import ClientEventPublisher

logger = logging.getLogger(__name__)


class ClientUpdateOrchestrator:
    """Actualiza el registro y, solo si DynamoDB confirma, publica ClientUpdated"""

    def __init__(
        self,
        store: DynamoClientStore,
        publisher: ClientEventPublisher,
        partial_updates: bool = True,
    ):
        self.store = store
        self.publisher = publisher
        self.partial_updates = partial_updates

    async def update_client(self, ci: str, request: UpdateClientRequest) -> Dict[str, Any]:
        """
        Ejecutar la actualización y publicar el evento.

        Los ``DatastoreError`` se propagan sin publicar nada. El publisher solo
        encola el evento, así que un broker lento o caído no retrasa ni hace
        fallar la respuesta.
        """
        fields = request.to_fields(partial=self.partial_updates)
        result = await asyncio.to_thread(self.store.update_client, ci, fields)
        logger.info(f"Cliente {ci} actualizado en DynamoDB")

        # El evento lleva lo enviado por el cliente, no el eco de DynamoDB
        event = ClientUpdatedEvent(data={"ci": ci, **fields})
        try:
            await self.publisher.publish(event)
        except Exception as e:
            logger.error(f"Error publicando evento ClientUpdated para {ci}: {e}", exc_info=True)

        return result

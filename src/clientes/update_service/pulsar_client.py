"""
Publisher de eventos de cliente sobre Apache Pulsar con reconexión supervisada
"""
import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional

import pulsar

from .config import Settings
from .errors import PublishError
from .models import ClientUpdatedEvent

logger = logging.getLogger(__name__)


class ChannelState(Enum):
    """Estados del canal hacia Pulsar"""
    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ClientEventPublisher:
    """
    Canal compartido hacia el topic persistente de eventos de cliente.

    ``publish`` solo encola en un buffer acotado y nunca lanza excepciones.
    Una única tarea escritora vacía el buffer hacia el producer; si el canal
    cae, los eventos esperan en el buffer hasta la reconexión.
    """

    def __init__(self, settings: Settings, client_factory: Callable[..., Any] = pulsar.Client):
        self.settings = settings
        self.client_factory = client_factory
        self.client: Optional[Any] = None
        self.producer: Optional[Any] = None
        self.state = ChannelState.UNCONNECTED
        self.pending: Deque[ClientUpdatedEvent] = deque()
        self.dropped_events = 0
        self.published_events = 0
        self._connect_lock = asyncio.Lock()
        self._drain_lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._disconnected = asyncio.Event()
        self._disconnected.set()
        self._writer: Optional[asyncio.Task] = None
        self._supervisor: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self.state is ChannelState.CONNECTED

    async def connect(self):
        """Conectar a Pulsar y crear el producer del topic (solo una vez)"""
        async with self._connect_lock:
            if self.connected:
                return

            if self.client is not None:
                # Canal roto tras una pérdida de conexión
                await asyncio.to_thread(self._close_channel)

            self.state = ChannelState.CONNECTING
            logger.info(f"Conectando a Pulsar: {self.settings.pulsar_url}")
            try:
                self.client, self.producer = await asyncio.to_thread(self._open_channel)
            except Exception as e:
                logger.error(f"Error conectando a Pulsar: {e}")
                self._mark_unconnected()
                raise PublishError(f"Could not connect to {self.settings.pulsar_url}: {e}") from e

            self.state = ChannelState.CONNECTED
            self._disconnected.clear()
            logger.info(f"Conectado a Pulsar, topic: {self.settings.client_events_topic}")

        if self.pending:
            logger.info(f"Reenviando {len(self.pending)} eventos pendientes")
        self._wakeup.set()

    def _open_channel(self):
        client = self.client_factory(
            self.settings.pulsar_url,
            connection_timeout_ms=self.settings.connection_timeout_ms,
            operation_timeout_seconds=self.settings.operation_timeout_seconds,
            logger=logging.getLogger("pulsar"),
        )
        try:
            producer = client.create_producer(
                self.settings.client_events_topic,
                send_timeout_millis=self.settings.producer_send_timeout_ms,
            )
        except Exception:
            client.close()
            raise
        return client, producer

    def _close_channel(self):
        if self.producer is not None:
            try:
                self.producer.close()
            except Exception as e:
                logger.error(f"Error cerrando producer {self.settings.client_events_topic}: {e}")
        if self.client is not None:
            try:
                self.client.close()
                logger.info("Cliente Pulsar cerrado")
            except Exception as e:
                logger.error(f"Error cerrando cliente Pulsar: {e}")
        self.producer = None
        self.client = None

    def _mark_unconnected(self):
        self.state = ChannelState.UNCONNECTED
        self._disconnected.set()

    async def disconnect(self):
        """Desconectar de Pulsar"""
        async with self._connect_lock:
            await asyncio.to_thread(self._close_channel)
            self.state = ChannelState.UNCONNECTED

    async def reconnect(self):
        """Cerrar el canal actual y volver a conectar"""
        logger.info("Reconectando a Pulsar...")
        async with self._connect_lock:
            await asyncio.to_thread(self._close_channel)
            self._mark_unconnected()
        await self.connect()

    async def publish(self, event: ClientUpdatedEvent) -> bool:
        """
        Encolar un evento para el topic de clientes.

        Retorna de inmediato: el envío lo hace la tarea escritora. Devuelve
        ``False`` solo si el evento se descartó por no haber buffer.
        """
        accepted = self._buffer(event)
        if not self.connected:
            logger.error(f"Canal de Pulsar no inicializado, evento {event.event_type} pendiente")
        self._wakeup.set()
        return accepted

    async def flush(self):
        """Enviar ahora todo lo pendiente si el canal está conectado"""
        async with self._drain_lock:
            await self._drain()

    async def _drain(self):
        # Llamar solo con _drain_lock tomado: único escritor sobre el producer
        while self.pending and self.connected:
            event = self.pending.popleft()
            try:
                await self._send(event)
            except Exception as e:
                logger.error(f"Error publicando evento en Pulsar: {e}")
                self._requeue(event)
                self._mark_unconnected()
                return
            self.published_events += 1
            logger.info(f"Evento publicado en Pulsar: {event.event_type} ci={event.data.get('ci')}")

    async def _send(self, event: ClientUpdatedEvent):
        producer = self.producer
        if producer is None:
            raise PublishError("Channel is not initialized")
        await asyncio.to_thread(
            producer.send,
            event.to_message(),
            partition_key=event.data.get("ci"),
        )

    def _buffer(self, event: ClientUpdatedEvent) -> bool:
        max_size = self.settings.publisher_retry_buffer_size
        if max_size <= 0:
            self.dropped_events += 1
            logger.warning(f"Evento {event.event_type} descartado (buffer de reintentos deshabilitado)")
            return False
        if len(self.pending) >= max_size:
            dropped = self.pending.popleft()
            self.dropped_events += 1
            logger.warning(f"Buffer de reintentos lleno, descartando evento ci={dropped.data.get('ci')}")
        self.pending.append(event)
        return True

    def _requeue(self, event: ClientUpdatedEvent):
        # El evento fallido es el más antiguo: se descarta si ya no hay sitio
        if len(self.pending) >= self.settings.publisher_retry_buffer_size:
            self.dropped_events += 1
            logger.warning(f"Buffer de reintentos lleno, descartando evento ci={event.data.get('ci')}")
            return
        self.pending.appendleft(event)

    def start(self, supervise: bool = True):
        """Arrancar la tarea escritora y, opcionalmente, el supervisor de reconexión"""
        if self._writer is None or self._writer.done():
            self._writer = asyncio.create_task(self._write_loop())
        if supervise and (self._supervisor is None or self._supervisor.done()):
            self._supervisor = asyncio.create_task(self._supervise())

    async def stop(self):
        """Detener las tareas de fondo enviando antes lo pendiente"""
        await self._cancel(self._supervisor)
        self._supervisor = None
        await self.flush()
        await self._cancel(self._writer)
        self._writer = None

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]):
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _write_loop(self):
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.flush()

    async def _supervise(self):
        delay = self.settings.reconnect_initial_delay
        while True:
            await self._disconnected.wait()
            await asyncio.sleep(delay)
            try:
                await self.connect()
            except PublishError:
                delay = min(delay * 2, self.settings.reconnect_max_delay)
                logger.warning(f"Pulsar sigue sin conexión, próximo intento en {delay:.1f}s")
            else:
                delay = self.settings.reconnect_initial_delay

    def get_health_status(self) -> Dict[str, Any]:
        """Obtener estado de salud del canal Pulsar"""
        return {
            "connected": self.connected,
            "state": self.state.value,
            "topic": self.settings.client_events_topic,
            "pending_events": len(self.pending),
            "published_events": self.published_events,
            "dropped_events": self.dropped_events,
        }

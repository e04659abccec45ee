"""
Configuración de pytest para el Update Client Service

Dobles de prueba para los colaboradores externos:
- Cliente Lambda que devuelve el payload anidado de secretos
- Tabla DynamoDB con update_item
- Factoría de clientes Pulsar con fallos controlables
"""
import io
import json
import time
from typing import Any, Dict, List

import pytest

from clientes.update_service.config import Settings


def lambda_payload(access_key_id="AKIATEST", secret_access_key="s3cr3t") -> bytes:
    """Payload JSON-en-JSON-en-JSON como lo devuelve la Lambda de secretos"""
    secret = json.dumps(
        {"AWS_ACCESS_KEY_ID": access_key_id, "AWS_SECRET_ACCESS_KEY": secret_access_key}
    )
    return json.dumps({"statusCode": 200, "body": json.dumps({"secret": secret})}).encode()


class FakeLambdaClient:
    def __init__(self, payload=b"", status_code=200, function_error=None, error=None):
        self.payload = payload or lambda_payload()
        self.status_code = status_code
        self.function_error = function_error
        self.error = error
        self.calls: List[str] = []

    def invoke(self, FunctionName):
        self.calls.append(FunctionName)
        if self.error is not None:
            raise self.error
        response = {
            "StatusCode": self.status_code,
            "Payload": io.BytesIO(self.payload),
        }
        if self.function_error:
            response["FunctionError"] = self.function_error
        return response


class FakeTable:
    def __init__(self, error=None):
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def update_item(self, **params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        attributes = {
            placeholder[1:]: value
            for placeholder, value in params["ExpressionAttributeValues"].items()
        }
        return {
            "Attributes": attributes,
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }


class FakeProducer:
    def __init__(self, topic, sent, delay=0.0):
        self.topic = topic
        self.sent = sent
        self.delay = delay
        self.fail_sends = False
        self.closed = False

    def send(self, content, partition_key=None):
        # Se ejecuta en un hilo, como el send bloqueante de pulsar
        if self.delay:
            time.sleep(self.delay)
        if self.fail_sends or self.closed:
            raise ConnectionError("connection to broker lost")
        self.sent.append({"content": content, "partition_key": partition_key})

    def close(self):
        self.closed = True


class FakePulsarClient:
    def __init__(self, factory, url, **kwargs):
        self.factory = factory
        self.url = url
        self.kwargs = kwargs
        self.producers: List[FakeProducer] = []
        self.closed = False

    def create_producer(self, topic, **kwargs):
        producer = FakeProducer(topic, self.factory.sent, delay=self.factory.send_delay)
        self.producers.append(producer)
        return producer

    def close(self):
        self.closed = True


class FakePulsarFactory:
    """Reemplaza a ``pulsar.Client``; las primeras ``fail_connects`` llamadas fallan"""

    def __init__(self, fail_connects=0, send_delay=0.0):
        self.fail_connects = fail_connects
        self.send_delay = send_delay
        self.attempts = 0
        self.clients: List[FakePulsarClient] = []
        self.sent: List[Dict[str, Any]] = []

    def __call__(self, url, **kwargs):
        self.attempts += 1
        if self.attempts <= self.fail_connects:
            raise ConnectionError(f"cannot reach {url}")
        client = FakePulsarClient(self, url, **kwargs)
        self.clients.append(client)
        return client

    @property
    def producer(self) -> FakeProducer:
        return self.clients[-1].producers[-1]

    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(item["content"]) for item in self.sent]


def make_settings(**overrides) -> Settings:
    values: Dict[str, Any] = {
        "reconnect_enabled": False,
        "reconnect_initial_delay": 0.01,
        "reconnect_max_delay": 0.05,
        "publisher_retry_buffer_size": 10,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def pulsar_factory():
    return FakePulsarFactory()


@pytest.fixture
def table():
    return FakeTable()

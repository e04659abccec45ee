"""
Errores del servicio de actualización de clientes
"""


class UpdateServiceError(Exception):
    """Error base del servicio"""


class SecretFetchError(UpdateServiceError):
    """No se pudieron obtener las credenciales desde la Lambda de secretos"""


class DatastoreError(UpdateServiceError):
    """Fallo de transporte o autorización contra DynamoDB"""


class ClientNotFoundError(DatastoreError):
    """El cliente no existe y la actualización exige que exista"""

    def __init__(self, ci: str):
        super().__init__(f"Client {ci} not found")
        self.ci = ci


class PublishError(UpdateServiceError):
    """Fallo al conectar o publicar en Pulsar"""

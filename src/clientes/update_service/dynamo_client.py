"""
Adaptador de DynamoDB para la tabla de clientes
"""
import logging
from typing import Any, Dict, Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import ClientNotFoundError, DatastoreError
from .models import CredentialBundle

logger = logging.getLogger(__name__)


class DynamoClientStore:
    """Actualización de registros de cliente identificados por ``ci``"""

    def __init__(self, table: Any, require_existing: bool = False):
        self.table = table
        self.require_existing = require_existing

    @classmethod
    def from_credentials(cls, settings: Settings, credentials: CredentialBundle) -> "DynamoClientStore":
        """Construir el store una única vez durante el arranque"""
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key.get_secret_value(),
            region_name=settings.aws_region,
        )
        table = session.resource("dynamodb").Table(settings.clients_table_name)
        logger.info(f"DynamoDB configurado: tabla {settings.clients_table_name} en {settings.aws_region}")
        return cls(table, require_existing=settings.require_existing_client)

    def update_client(self, ci: str, fields: Mapping[str, Optional[str]]) -> Dict[str, Any]:
        """
        SET de los campos indicados sobre el registro ``ci``.

        Sin ``require_existing`` DynamoDB crea el registro si no existe.
        Devuelve ``{"Attributes": {...}}`` con los valores nuevos.
        """
        if not fields:
            raise ValueError("At least one field is required to update a client")

        names = {f"#{name}": name for name in fields}
        values = {f":{name}": value for name, value in fields.items()}
        params: Dict[str, Any] = {
            "Key": {"ci": ci},
            "UpdateExpression": "SET " + ", ".join(f"#{name} = :{name}" for name in fields),
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "UPDATED_NEW",
        }
        if self.require_existing:
            params["ConditionExpression"] = "attribute_exists(#ci)"
            names["#ci"] = "ci"

        try:
            response = self.table.update_item(**params)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise ClientNotFoundError(ci) from e
            logger.error(f"Error actualizando cliente {ci} en DynamoDB: {e}")
            raise DatastoreError(str(e)) from e
        except BotoCoreError as e:
            logger.error(f"Error de transporte con DynamoDB para cliente {ci}: {e}")
            raise DatastoreError(str(e)) from e

        return {"Attributes": response.get("Attributes", {})}

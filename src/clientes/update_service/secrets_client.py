"""
Cliente de la Lambda de secretos

La Lambda responde con un payload JSON cuyo ``body`` es a su vez un string JSON
que contiene ``secret``, otro string JSON con las credenciales AWS.
"""
import json
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from .config import Settings
from .errors import SecretFetchError
from .models import CredentialBundle

logger = logging.getLogger(__name__)


def _decode_json(raw: Any, what: str) -> Dict[str, Any]:
    """Decodificar un nivel del sobre de la Lambda"""
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SecretFetchError(f"Invalid JSON in {what}: {e}") from e
    if not isinstance(decoded, dict):
        raise SecretFetchError(f"Expected a JSON object in {what}")
    return decoded


class LambdaSecretsClient:
    """Obtiene el bundle de credenciales invocando una Lambda por nombre"""

    def __init__(self, settings: Settings, lambda_client: Optional[Any] = None):
        self.settings = settings
        self.lambda_client = lambda_client or boto3.client("lambda", region_name=settings.aws_region)

    def fetch_credentials(self) -> CredentialBundle:
        """Invocar la Lambda una sola vez y devolver las credenciales"""
        function_name = self.settings.secrets_function_name
        logger.info(f"Obteniendo secretos desde Lambda: {function_name}")

        try:
            response = self.lambda_client.invoke(FunctionName=function_name)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error invocando la Lambda {function_name}: {e}")
            raise SecretFetchError(f"Error invoking {function_name}: {e}") from e

        status_code = response.get("StatusCode", 200)
        if not 200 <= status_code < 300:
            raise SecretFetchError(f"Lambda {function_name} returned status {status_code}")
        if response.get("FunctionError"):
            raise SecretFetchError(f"Lambda {function_name} failed: {response['FunctionError']}")

        try:
            raw_payload = response["Payload"].read()
        except (KeyError, AttributeError) as e:
            raise SecretFetchError(f"Lambda {function_name} returned no payload") from e

        payload = _decode_json(raw_payload, "payload")
        if payload.get("errorMessage"):
            raise SecretFetchError(payload["errorMessage"])
        body_status = payload.get("statusCode")
        if isinstance(body_status, int) and body_status >= 400:
            raise SecretFetchError(f"Secret function answered with status {body_status}")

        body = _decode_json(payload.get("body"), "payload body")
        secret = _decode_json(body.get("secret"), "secret")

        try:
            credentials = CredentialBundle(
                access_key_id=secret["AWS_ACCESS_KEY_ID"],
                secret_access_key=secret["AWS_SECRET_ACCESS_KEY"],
            )
        except KeyError as e:
            raise SecretFetchError(f"Secret is missing {e}") from e
        except ValidationError as e:
            raise SecretFetchError(f"Invalid credentials in secret: {e}") from e

        logger.info("Secretos obtenidos correctamente")
        return credentials

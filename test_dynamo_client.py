"""
Pruebas del almacén de clientes en DynamoDB
"""
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from clientes.update_service.dynamo_client import DynamoClientStore
from clientes.update_service.errors import ClientNotFoundError, DatastoreError
from conftest import FakeTable

FIELDS = {"firstName": "A", "lastName": "B", "phone": "1", "address": "X"}


def test_update_sets_every_given_field(table):
    """Un solo SET con nombres y valores por placeholder"""
    store = DynamoClientStore(table)

    result = store.update_client("123", FIELDS)

    params = table.calls[0]
    assert params["Key"] == {"ci": "123"}
    assert params["UpdateExpression"] == (
        "SET #firstName = :firstName, #lastName = :lastName, #phone = :phone, #address = :address"
    )
    assert params["ReturnValues"] == "UPDATED_NEW"
    assert "ConditionExpression" not in params
    assert result == {"Attributes": FIELDS}


def test_update_with_subset_of_fields(table):
    store = DynamoClientStore(table)

    result = store.update_client("123", {"phone": "555"})

    assert table.calls[0]["UpdateExpression"] == "SET #phone = :phone"
    assert result == {"Attributes": {"phone": "555"}}


def test_update_without_fields_is_rejected(table):
    with pytest.raises(ValueError):
        DynamoClientStore(table).update_client("123", {})

    assert table.calls == []


def test_require_existing_adds_condition(table):
    DynamoClientStore(table, require_existing=True).update_client("123", FIELDS)

    params = table.calls[0]
    assert params["ConditionExpression"] == "attribute_exists(#ci)"
    assert params["ExpressionAttributeNames"]["#ci"] == "ci"


def test_failed_condition_raises_client_not_found():
    error = ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "failed"}},
        "UpdateItem",
    )
    store = DynamoClientStore(FakeTable(error=error), require_existing=True)

    with pytest.raises(ClientNotFoundError) as exc_info:
        store.update_client("999", FIELDS)

    assert exc_info.value.ci == "999"


@pytest.mark.parametrize(
    "error",
    [
        ClientError({"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "UpdateItem"),
        EndpointConnectionError(endpoint_url="https://dynamodb.us-east-2.amazonaws.com"),
    ],
)
def test_store_errors_raise_datastore_error(error):
    store = DynamoClientStore(FakeTable(error=error))

    with pytest.raises(DatastoreError) as exc_info:
        store.update_client("123", FIELDS)

    assert not isinstance(exc_info.value, ClientNotFoundError)
    assert exc_info.value.__cause__ is error

import logging
from collections.abc import Iterable

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from dynacasbin.core.config import settings
from dynacasbin.core.exceptions import ConditionalCheckFailure, TransientStoreError
from dynacasbin.models import CasbinRule
from dynacasbin.utils import mask_string

logger = logging.getLogger(__name__)

# BatchWriteItem accepts at most 25 put/delete requests per call
BATCH_WRITE_LIMIT = 25

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def is_conditional_check_error(err: Exception) -> bool:
    if isinstance(err, ClientError):
        return err.response["Error"]["Code"] == "ConditionalCheckFailedException"
    return False


class CasbinRuleCrud:
    """Reads and writes ``CasbinRule`` items in a single DynamoDB table.

    The boto3 client is shared between threads; it is safe for concurrent
    use and nothing else here holds mutable state.
    """

    def __init__(self, client, table_name: str):
        self.client = client
        self.table_name = table_name

    def _key(self, rule_id: str) -> dict:
        return {"ID": _serializer.serialize(rule_id)}

    def _serialize(self, record: CasbinRule) -> dict:
        return {k: _serializer.serialize(v) for k, v in record.to_item().items()}

    def read_all(self) -> list[CasbinRule]:
        records = []
        try:
            paginator = self.client.get_paginator("scan")
            for page in paginator.paginate(
                TableName=self.table_name, ConsistentRead=True
            ):
                for item in page.get("Items", []):
                    values = {k: _deserializer.deserialize(v) for k, v in item.items()}
                    records.append(CasbinRule.from_item(values))
        except (ClientError, BotoCoreError) as err:
            logger.error(
                f"[CasbinRuleCrud.read_all] Scan failed | "
                f"{{'table': '{mask_string(self.table_name)}', 'read': {len(records)}, 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise TransientStoreError(err) from err

        logger.debug(
            f"[CasbinRuleCrud.read_all] Table scanned | "
            f"{{'table': '{mask_string(self.table_name)}', 'count': {len(records)}}}"
        )
        return records

    def create(self, record: CasbinRule) -> None:
        try:
            self.client.put_item(
                TableName=self.table_name,
                Item=self._serialize(record),
                ConditionExpression="attribute_not_exists(ID)",
            )
        except ClientError as err:
            if is_conditional_check_error(err):
                raise ConditionalCheckFailure(record.id) from err
            logger.error(
                f"[CasbinRuleCrud.create] Put failed | "
                f"{{'id': '{record.id}', 'ptype': '{record.ptype}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise TransientStoreError(err) from err
        except BotoCoreError as err:
            logger.error(
                f"[CasbinRuleCrud.create] Put failed | "
                f"{{'id': '{record.id}', 'ptype': '{record.ptype}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise TransientStoreError(err) from err

    def delete(self, rule_id: str) -> None:
        try:
            self.client.delete_item(TableName=self.table_name, Key=self._key(rule_id))
        except (ClientError, BotoCoreError) as err:
            logger.error(
                f"[CasbinRuleCrud.delete] Delete failed | "
                f"{{'id': '{rule_id}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise TransientStoreError(err) from err

    def create_many(self, records: Iterable[CasbinRule]) -> int:
        requests = [{"PutRequest": {"Item": self._serialize(r)}} for r in records]
        return self._batch_write(requests)

    def delete_many(self, rule_ids: Iterable[str]) -> int:
        """Delete by id and return how many delete requests DynamoDB processed.

        Deleting an id that is not stored still counts as processed.
        """
        requests = [{"DeleteRequest": {"Key": self._key(i)}} for i in rule_ids]
        return self._batch_write(requests)

    def _batch_write(self, requests: list[dict]) -> int:
        processed = 0
        for start in range(0, len(requests), BATCH_WRITE_LIMIT):
            chunk = requests[start : start + BATCH_WRITE_LIMIT]
            processed += self._write_chunk(chunk)
        return processed

    def _submit(self, requests: list[dict]) -> list[dict]:
        response = self.client.batch_write_item(
            RequestItems={self.table_name: requests}
        )
        return response.get("UnprocessedItems", {}).get(self.table_name, [])

    def _write_chunk(self, requests: list[dict]) -> int:
        unprocessed = requests
        try:
            for attempt in Retrying(
                retry=retry_if_result(bool),
                stop=stop_after_attempt(settings.DYNAMODB_BATCH_MAX_ATTEMPTS),
                wait=wait_exponential(multiplier=0.05, max=2),
            ):
                with attempt:
                    unprocessed = self._submit(unprocessed)
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(unprocessed)
        except RetryError:
            logger.warning(
                f"[CasbinRuleCrud._write_chunk] Items left unprocessed | "
                f"{{'table': '{mask_string(self.table_name)}', 'submitted': {len(requests)}, 'unprocessed': {len(unprocessed)}}}"
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(
                f"[CasbinRuleCrud._write_chunk] Batch write failed | "
                f"{{'table': '{mask_string(self.table_name)}', 'submitted': {len(requests)}, 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise TransientStoreError(err) from err

        return len(requests) - len(unprocessed)

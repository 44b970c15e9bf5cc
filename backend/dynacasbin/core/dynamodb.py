import os
import logging
import functools as ft

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from dynacasbin.core.config import settings
from dynacasbin.core.exceptions import StoreUnavailableError
from dynacasbin.utils import mask_string

logger = logging.getLogger(__name__)


class DynamoDBClient:
    @ft.cached_property
    def client(self):
        kwargs = {}
        cred_params = (
            ("aws_access_key_id", "AWS_ACCESS_KEY_ID"),
            ("aws_secret_access_key", "AWS_SECRET_ACCESS_KEY"),
            ("region_name", "AWS_DEFAULT_REGION"),
        )

        for i, j in cred_params:
            value = os.environ.get(j, getattr(settings, j))
            if value:
                kwargs[i] = value

        if settings.DYNAMODB_ENDPOINT_URL:
            kwargs["endpoint_url"] = settings.DYNAMODB_ENDPOINT_URL

        config = Config(
            connect_timeout=settings.DYNAMODB_CONNECT_TIMEOUT,
            read_timeout=settings.DYNAMODB_READ_TIMEOUT,
            retries={
                "max_attempts": settings.DYNAMODB_MAX_ATTEMPTS,
                "mode": "standard",
            },
        )

        return boto3.client("dynamodb", config=config, **kwargs)

    def check_table(self, table_name: str) -> None:
        try:
            response = self.client.describe_table(TableName=table_name)
        except ClientError as err:
            code = err.response["Error"]["Code"]
            logger.error(
                f"[DynamoDBClient.check_table] Table not usable | "
                f"{{'table': '{mask_string(table_name)}', 'code': '{code}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise StoreUnavailableError(err) from err
        except BotoCoreError as err:
            logger.error(
                f"[DynamoDBClient.check_table] DynamoDB unreachable | "
                f"{{'table': '{mask_string(table_name)}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise StoreUnavailableError(err) from err

        status = response["Table"].get("TableStatus")
        logger.info(
            f"[DynamoDBClient.check_table] Table available | "
            f"{{'table': '{mask_string(table_name)}', 'status': '{status}'}}"
        )

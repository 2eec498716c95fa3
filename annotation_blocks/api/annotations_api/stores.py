"""
Process-wide store clients.

Clients are created on first use and cached for the life of the Lambda
container. Tests replace them with ``set_stores``.
"""

from typing import Optional

import boto3
from aws_lambda_powertools import Logger

from annotation_blocks.api.annotations_api.config import ApiConfig
from annotation_blocks.common_libraries.keyed_store import DynamoKeyedStore, KeyedStore
from annotation_blocks.common_libraries.object_store import ObjectStore, S3ObjectStore

logger = Logger(service="annotations-stores", child=True)

_config: Optional[ApiConfig] = None
_keyed_store: Optional[KeyedStore] = None
_object_store: Optional[ObjectStore] = None


def get_config() -> ApiConfig:
    global _config
    if _config is None:
        _config = ApiConfig.from_env()
    return _config


def get_keyed_store() -> KeyedStore:
    global _keyed_store
    if _keyed_store is None:
        config = get_config()
        dynamodb = boto3.resource("dynamodb", region_name=config.region)
        _keyed_store = DynamoKeyedStore(dynamodb.Table(config.table_name))
        logger.debug(f"Initialized DynamoDB table: {config.table_name}")
    return _keyed_store


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is None:
        config = get_config()
        _object_store = S3ObjectStore(
            boto3.client("s3", region_name=config.region), config.bucket_name
        )
        logger.debug(f"Initialized S3 bucket: {config.bucket_name}")
    return _object_store


def set_stores(
    keyed_store: Optional[KeyedStore] = None,
    object_store: Optional[ObjectStore] = None,
    config: Optional[ApiConfig] = None,
) -> None:
    """Replace the cached clients; passing None resets a slot to lazy creation"""
    global _keyed_store, _object_store, _config
    _keyed_store = keyed_store
    _object_store = object_store
    _config = config

"""
SSM Parameter Store implementation.

Used to resolve API keys that are not supplied through the environment.
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from tiered_timeseries.storage.aws import AWSClientFactory
from tiered_timeseries.storage.interfaces import ParameterStore, translate_aws_error

logger = logging.getLogger(__name__)


class SSMParameterStore(ParameterStore):
    """Reads (and decrypts) parameters from AWS Systems Manager."""

    def __init__(self, clients: AWSClientFactory):
        self._clients = clients

    async def get_parameter(self, name: str) -> Optional[str]:
        try:
            async with self._clients.client("ssm") as client:
                response = await client.get_parameter(Name=name, WithDecryption=True)
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, f"SSM GetParameter {name}") from e

        logger.debug(f"Resolved parameter {name}")
        return response.get("Parameter", {}).get("Value")

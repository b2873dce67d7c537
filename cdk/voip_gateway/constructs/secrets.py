"""
Secrets Construct for the SIP credential bundle
"""

import json
import logging
from typing import Dict, Iterable, Optional

from aws_cdk import (
    aws_ecs as ecs,
    aws_iam as iam,
    aws_secretsmanager as secretsmanager,
    SecretValue,
    Tags,
)
from constructs import Construct

from ..errors import SecretCreationError

logger = logging.getLogger(__name__)


class SecretsConstruct(Construct):
    """
    Stores credential fields as one JSON secret.

    Consumers never see the values; they get ``(secret, field)`` references
    that the backend resolves when a task starts.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 secret_name: str, fields: Dict[str, str],
                 description: str = "SIP server credentials for Nova Sonic VoIP Gateway",
                 readers: Optional[Iterable[iam.IGrantable]] = None,
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        if not secret_name:
            raise SecretCreationError(secret_name, "Secret name must not be empty")
        if not fields:
            raise SecretCreationError(secret_name, f"Secret {secret_name} has no fields")
        blank = [name for name in fields if not name or not name.strip()]
        if blank:
            raise SecretCreationError(secret_name, f"Secret {secret_name} has a blank field name")

        self.secret_name = secret_name
        self.field_names = tuple(fields)

        self.secret = secretsmanager.Secret(
            self, "SipServerSecret",
            secret_name=secret_name,
            description=description,
            secret_string_value=SecretValue.unsafe_plain_text(json.dumps(fields)),
        )
        for reader in readers or ():
            self.grant_read(reader)

        logger.info(f"Declared secret {secret_name} with fields: {', '.join(self.field_names)}")
        Tags.of(self).add("Project", "s2s-voip-gateway")

    def grant_read(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.secret.grant_read(grantee)

    def field(self, name: str) -> ecs.Secret:
        """Reference to one field, for container secret injection"""
        if name not in self.field_names:
            raise SecretCreationError(
                self.secret_name, f"Secret {self.secret_name} has no field '{name}'")
        return ecs.Secret.from_secrets_manager(self.secret, name)

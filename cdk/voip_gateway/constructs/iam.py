"""
IAM Construct for roles and policies
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence, Tuple

from aws_cdk import (
    aws_iam as iam,
    Tags,
)
from constructs import Construct

from ..errors import PolicyGrantError

logger = logging.getLogger(__name__)

EC2_PRINCIPAL = "ec2.amazonaws.com"
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
ECS_TASK_EXECUTION_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"

ACTION_PATTERN = re.compile(r"^[a-z0-9-]+:[A-Za-z0-9*]+$")


@dataclass(frozen=True)
class PolicyGrant:
    """A named inline grant; grants sharing a name go in one policy document."""
    name: str
    actions: Tuple[str, ...]
    resources: Tuple[str, ...] = ("*",)
    effect: str = "allow"

    def validate(self) -> None:
        if not self.actions:
            raise PolicyGrantError(f"Grant '{self.name}' has no actions", actions=[])
        malformed = [a for a in self.actions if not ACTION_PATTERN.match(a)]
        if malformed:
            raise PolicyGrantError(
                f"Grant '{self.name}' has malformed actions", actions=malformed)
        if not self.resources:
            raise PolicyGrantError(
                f"Grant '{self.name}' has no resources", actions=list(self.actions))
        if self.effect not in ("allow", "deny"):
            raise PolicyGrantError(
                f"Grant '{self.name}' has unknown effect '{self.effect}'",
                actions=list(self.actions))

    def to_statement(self) -> iam.PolicyStatement:
        return iam.PolicyStatement(
            effect=iam.Effect.ALLOW if self.effect == "allow" else iam.Effect.DENY,
            actions=list(self.actions),
            resources=list(self.resources),
        )


MODEL_INVOCATION_GRANT = PolicyGrant(
    name="BedrockAccess",
    actions=(
        "bedrock:InvokeModel",
        "bedrock:GetModelInvocationLoggingConfiguration",
        "bedrock:InvokeModelWithResponseStream",
    ),
)


class IdentityConstruct(Construct):
    """
    Manages the execution roles used by the gateway workload.

    One role is created per distinct (principal, grants, managed policies)
    combination; asking for the same combination again returns that role.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.roles: Dict[tuple, iam.Role] = {}

    def add_role(self, construct_id: str, principal: str,
                 grants: Sequence[PolicyGrant] = (),
                 managed_policy_names: Iterable[str] = ()) -> iam.Role:
        """Declare a role trusted by ``principal`` with static grants"""
        grants = tuple(grants)
        managed_policy_names = tuple(managed_policy_names)
        key = (principal, grants, managed_policy_names)
        if key in self.roles:
            return self.roles[key]

        for grant in grants:
            try:
                grant.validate()
            except PolicyGrantError as e:
                raise PolicyGrantError(e.message, role=construct_id, actions=e.actions) from e

        documents: Dict[str, iam.PolicyDocument] = {}
        for grant in grants:
            document = documents.setdefault(grant.name, iam.PolicyDocument())
            document.add_statements(grant.to_statement())

        role = iam.Role(
            self, construct_id,
            assumed_by=iam.ServicePrincipal(principal),
            inline_policies=documents or None,
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(name)
                for name in managed_policy_names
            ] or None,
        )
        Tags.of(role).add("Project", "s2s-voip-gateway")
        self.roles[key] = role

        logger.info(
            f"Declared role {construct_id} for {principal} "
            f"({len(grants)} grant(s), {len(managed_policy_names)} managed policy(ies))")
        return role

    def instance_role(self) -> iam.Role:
        """Role assumed by the gateway EC2 instance"""
        return self.add_role("InstanceRole", EC2_PRINCIPAL, grants=[MODEL_INVOCATION_GRANT])

    def task_execution_role(self) -> iam.Role:
        """Role the ECS agent uses to pull images, publish logs and read secrets"""
        return self.add_role(
            "TaskExecutionRole", ECS_TASKS_PRINCIPAL,
            managed_policy_names=[ECS_TASK_EXECUTION_POLICY])

    def task_role(self) -> iam.Role:
        """Role assumed by the gateway container itself"""
        return self.add_role("TaskRole", ECS_TASKS_PRINCIPAL, grants=[MODEL_INVOCATION_GRANT])

"""
Translate CloudFormation failure events into gateway errors.

The backend reports capacity, policy, secret and network lookup problems
only while a deployment is applied. This module reads the stack's failed
events and maps each one onto the error hierarchy in ``errors``.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import boto3

from .errors import (
    CapacityProvisioningError,
    PolicyGrantError,
    SecretCreationError,
    TopologyResolutionError,
    VoipGatewayInfraError,
)

logger = logging.getLogger(__name__)

# Cancellations are a side effect of another failure
IGNORED_REASONS = ("Resource creation cancelled", "Resource update cancelled")


@dataclass
class StackFailure:
    """One failed resource event and the error it maps to."""
    logical_id: str
    physical_id: str
    resource_type: str
    status: str
    reason: str
    timestamp: Optional[datetime]
    error: VoipGatewayInfraError


@dataclass
class FailureRule:
    """Matches a resource type and a status reason to an error factory."""
    id: str
    resource_types: str
    regexes: List[str]
    build: Callable[[str, str], VoipGatewayInfraError]

    def matches(self, resource_type: str, reason: str) -> bool:
        if not re.match(self.resource_types, resource_type):
            return False
        return any(re.search(regex, reason, re.IGNORECASE) for regex in self.regexes)


class StackFailureClassifier:
    """Classifies CloudFormation status reasons using regex rules."""

    def __init__(self):
        self.rules = self._load_default_rules()

    def _load_default_rules(self) -> List[FailureRule]:
        return [
            FailureRule(
                id="secret_exists",
                resource_types=r"AWS::SecretsManager::Secret$",
                regexes=[
                    r"already exists",
                    r"scheduled for deletion",
                    r"ResourceExistsException",
                ],
                build=lambda physical_id, reason: SecretCreationError(physical_id, reason),
            ),
            FailureRule(
                id="policy_rejected",
                resource_types=r"AWS::IAM::",
                regexes=[
                    r"MalformedPolicyDocument",
                    r"Invalid principal",
                    r"has an invalid action",
                    r"Policy document should not specify",
                    r"is not authorized to perform",
                ],
                build=lambda physical_id, reason: PolicyGrantError(reason, role=physical_id),
            ),
            FailureRule(
                id="capacity_unavailable",
                resource_types=r"AWS::(EC2::Instance|EC2::LaunchTemplate|AutoScaling::)",
                regexes=[
                    r"InsufficientInstanceCapacity",
                    r"Unsupported",
                    r"not supported in your requested Availability Zone",
                    r"InstanceLimitExceeded",
                    r"VcpuLimitExceeded",
                    r"InvalidInstanceType",
                ],
                build=lambda physical_id, reason: CapacityProvisioningError(message=reason),
            ),
            FailureRule(
                id="network_not_found",
                resource_types=r"AWS::EC2::",
                regexes=[
                    r"InvalidVpcID\.NotFound",
                    r"InvalidSubnetID\.NotFound",
                    r"vpc ID '?[\w-]+'? does not exist",
                ],
                build=lambda physical_id, reason: TopologyResolutionError(
                    _vpc_id_in(reason) or physical_id, reason),
            ),
        ]

    def classify(self, resource_type: str, reason: str,
                 physical_id: str = "") -> VoipGatewayInfraError:
        for rule in self.rules:
            if rule.matches(resource_type, reason):
                return rule.build(physical_id, reason)
        return VoipGatewayInfraError(reason, {"resource_type": resource_type})


def collect_stack_failures(stack_name: str, client=None,
                           classifier: Optional[StackFailureClassifier] = None) -> List[StackFailure]:
    """Read a stack's failed events, newest first, and classify them"""
    client = client or boto3.client("cloudformation")
    classifier = classifier or StackFailureClassifier()

    failures: List[StackFailure] = []
    paginator = client.get_paginator("describe_stack_events")
    for page in paginator.paginate(StackName=stack_name):
        for event in page.get("StackEvents", []):
            status = event.get("ResourceStatus", "")
            reason = event.get("ResourceStatusReason", "")
            if not status.endswith("_FAILED") or not reason:
                continue
            if any(reason.startswith(ignored) for ignored in IGNORED_REASONS):
                continue
            if event.get("ResourceType") == "AWS::CloudFormation::Stack":
                continue

            resource_type = event.get("ResourceType", "")
            physical_id = event.get("PhysicalResourceId", "")
            error = classifier.classify(resource_type, reason, physical_id)
            failures.append(StackFailure(
                logical_id=event.get("LogicalResourceId", ""),
                physical_id=physical_id,
                resource_type=resource_type,
                status=status,
                reason=reason,
                timestamp=event.get("Timestamp"),
                error=error,
            ))
            logger.warning(f"{event.get('LogicalResourceId')} {status}: {type(error).__name__}")

    return failures


def _vpc_id_in(reason: str) -> Optional[str]:
    match = re.search(r"vpc-[0-9a-f]+", reason)
    return match.group(0) if match else None

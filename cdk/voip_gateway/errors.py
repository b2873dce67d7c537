"""
Exceptions raised while assembling or deploying the VoIP gateway stacks.

Hierarchy:
- VoipGatewayInfraError (base)
  - TopologyConfigurationError
  - TopologyResolutionError
  - SecretCreationError
  - PolicyGrantError
  - CapacityProvisioningError
"""

from typing import Any, Dict, Optional


class VoipGatewayInfraError(Exception):
    """Base class for all gateway infrastructure errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({detail_str})"


class TopologyConfigurationError(VoipGatewayInfraError):
    """
    Input parameters cannot produce a consistent resource graph.

    Raised before any backend call, e.g. for an empty RTP port window or a
    subnet layout that does not fit the network's address space.
    """

    def __init__(self, message: str, *, parameter: Optional[str] = None,
                 value: Any = None) -> None:
        details = {}
        if parameter is not None:
            details["parameter"] = parameter
            details["value"] = value
        super().__init__(message, details)
        self.parameter = parameter
        self.value = value


class TopologyResolutionError(VoipGatewayInfraError):
    """A supplied network identifier does not resolve to an existing VPC."""

    def __init__(self, vpc_id: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Network could not be resolved: {vpc_id}",
                         {"vpc_id": vpc_id})
        self.vpc_id = vpc_id


class SecretCreationError(VoipGatewayInfraError):
    """The credential bundle could not be created (name collision or bad field set)."""

    def __init__(self, secret_name: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Secret could not be created: {secret_name}",
                         {"secret_name": secret_name})
        self.secret_name = secret_name


class PolicyGrantError(VoipGatewayInfraError):
    """A requested action/resource combination was rejected."""

    def __init__(self, message: str, *, role: Optional[str] = None,
                 actions: Optional[list] = None) -> None:
        details: Dict[str, Any] = {}
        if role:
            details["role"] = role
        if actions is not None:
            details["actions"] = actions
        super().__init__(message, details)
        self.role = role
        self.actions = actions


class CapacityProvisioningError(VoipGatewayInfraError):
    """The requested sizing class is unavailable in the resolved zones."""

    def __init__(self, instance_type: Optional[str] = None,
                 message: Optional[str] = None) -> None:
        details = {"instance_type": instance_type} if instance_type else {}
        super().__init__(
            message or f"Capacity could not be provisioned for {instance_type or 'instance'}",
            details)
        self.instance_type = instance_type

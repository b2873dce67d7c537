"""
Workload Construct for the gateway task definition and ECS service
"""

import logging
from typing import Dict, Optional

from aws_cdk import (
    aws_ecr_assets as ecr_assets,
    aws_ecs as ecs,
    aws_iam as iam,
    Tags,
)
from constructs import Construct

from ..config import RtpPortWindow
from ..errors import TopologyConfigurationError
from .cluster import ClusterConstruct
from .secrets import SecretsConstruct

logger = logging.getLogger(__name__)

# Container environment variable -> credential secret field
SECRET_ENVIRONMENT = {
    "SIP_SERVER": "server",
    "SIP_USER": "username",
    "AUTH_USER": "username",
    "AUTH_PASSWORD": "password",
    "AUTH_REALM": "realm",
    "DISPLAY_NAME": "displayName",
}


def media_environment(window: RtpPortWindow) -> Dict[str, str]:
    """Plain environment telling the gateway which RTP ports it owns"""
    return {
        "MEDIA_PORT_BASE": str(window.base_port),
        "MEDIA_PORT_COUNT": str(window.port_count),
    }


def container_image(image: str, image_directory: Optional[str] = None) -> ecs.ContainerImage:
    """Prebuilt registry image, or a local Dockerfile directory built as an asset"""
    if image_directory:
        return ecs.ContainerImage.from_asset(
            image_directory, platform=ecr_assets.Platform.LINUX_AMD64)
    return ecs.ContainerImage.from_registry(image)


class WorkloadConstruct(Construct):
    """
    Runs the gateway container on the cluster with host networking.

    Host mode lets the container bind the exact RTP range opened in the node
    security group. With one copy and ``min_healthy_percent=0`` the running
    task is stopped before its replacement starts, so a rollout has a short
    window with no gateway running.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 cluster: ClusterConstruct,
                 execution_role: iam.IRole,
                 task_role: iam.IRole,
                 image: ecs.ContainerImage,
                 secrets: SecretsConstruct,
                 rtp: RtpPortWindow,
                 cpu: int = 1024,
                 memory_mib: int = 1024,
                 log_stream_prefix: str = "voip-gateway",
                 environment: Optional[Dict[str, str]] = None,
                 desired_count: int = 1,
                 min_healthy_percent: int = 0,
                 max_healthy_percent: int = 100,
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        if desired_count < 1:
            raise TopologyConfigurationError(
                "Desired task count must be at least 1",
                parameter="desired_count", value=desired_count)
        if not 0 <= min_healthy_percent <= max_healthy_percent:
            raise TopologyConfigurationError(
                "Healthy percent bounds must satisfy 0 <= min <= max",
                parameter="min_healthy_percent", value=(min_healthy_percent, max_healthy_percent))

        self.environment = self._build_environment(rtp, environment or {})
        self.secret_environment = {
            name: secrets.field(field) for name, field in SECRET_ENVIRONMENT.items()
        }

        self.task_definition = ecs.Ec2TaskDefinition(
            self, "VoipGatewayTaskDefinition",
            network_mode=ecs.NetworkMode.HOST,
            execution_role=execution_role,
            task_role=task_role,
        )

        # No port mappings: the container uses the node's interfaces directly
        self.container = self.task_definition.add_container(
            "VoipGatewayContainer",
            image=image,
            memory_limit_mib=memory_mib,
            cpu=cpu,
            logging=ecs.LogDrivers.aws_logs(stream_prefix=log_stream_prefix),
            secrets=self.secret_environment,
            environment=self.environment,
        )

        self.service = ecs.Ec2Service(
            self, "VoipGatewayService",
            cluster=cluster.cluster,
            task_definition=self.task_definition,
            desired_count=desired_count,
            min_healthy_percent=min_healthy_percent,
            max_healthy_percent=max_healthy_percent,
        )

        logger.info(
            f"Declared host-mode service with {desired_count} task(s), "
            f"media ports {rtp.base_port}-{rtp.last_port}")
        Tags.of(self).add("Project", "s2s-voip-gateway")

    def _build_environment(self, rtp: RtpPortWindow,
                           extra: Dict[str, str]) -> Dict[str, str]:
        """Plain environment values; credential names are refused"""
        environment = dict(extra)
        environment.update(media_environment(rtp))
        leaked = sorted(set(environment) & set(SECRET_ENVIRONMENT))
        if leaked:
            raise TopologyConfigurationError(
                f"Credential variables must come from the secret: {', '.join(leaked)}",
                parameter="environment", value=leaked)
        return environment

    @property
    def service_name(self) -> str:
        return self.service.service_name

    @property
    def task_definition_arn(self) -> str:
        return self.task_definition.task_definition_arn

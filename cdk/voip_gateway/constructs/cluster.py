"""
Cluster Construct for the ECS cluster, its fixed capacity and registry endpoints
"""

import logging
from typing import List

from aws_cdk import (
    aws_autoscaling as autoscaling,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    Tags,
)
from constructs import Construct

from ..errors import TopologyConfigurationError
from .network import NetworkConstruct
from .security import SecurityGroupConstruct

logger = logging.getLogger(__name__)

REGISTRY_ENDPOINT_SERVICES = (
    ("EcrApiEndpoint", ec2.InterfaceVpcEndpointAwsService.ECR),
    ("EcrDockerEndpoint", ec2.InterfaceVpcEndpointAwsService.ECR_DOCKER),
)


class ClusterConstruct(Construct):
    """
    An ECS cluster backed by a fixed number of EC2 worker nodes.

    Nodes sit in public subnets with public IPs so they can pull images
    directly. ECR endpoints are also declared in the isolated subnets so the
    nodes can move there later without losing registry access.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 network: NetworkConstruct,
                 node_security: SecurityGroupConstruct,
                 endpoint_security: SecurityGroupConstruct,
                 instance_type: str = "t3.medium",
                 node_count: int = 1,
                 container_insights: bool = True,
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        for security in (node_security, endpoint_security):
            if security.vpc is not network.vpc:
                raise TopologyConfigurationError(
                    "Cluster security group belongs to a different network",
                    parameter="security_group", value=security.node.id)
        if node_count < 1:
            raise TopologyConfigurationError(
                "Cluster node count must be at least 1",
                parameter="node_count", value=node_count)

        self.network = network
        self.node_count = node_count

        self._create_registry_endpoints(endpoint_security)

        self.cluster = ecs.Cluster(
            self, "VoipGatewayCluster",
            vpc=network.vpc,
            container_insights_v2=(ecs.ContainerInsights.ENABLED if container_insights
                                   else ecs.ContainerInsights.DISABLED),
        )

        self._add_capacity(node_security, instance_type, node_count)

        self._apply_tags()

    def _create_registry_endpoints(self, endpoint_security: SecurityGroupConstruct) -> None:
        """Create ECR endpoints in the isolated subnets"""
        self.registry_endpoints: List[ec2.InterfaceVpcEndpoint] = []

        if not self.network.has_isolated_subnets:
            logger.warning(
                "Network has no isolated subnets; skipping ECR endpoints. "
                "Worker nodes will reach the registry over their public IPs only.")
            return

        for endpoint_id, service in REGISTRY_ENDPOINT_SERVICES:
            endpoint = ec2.InterfaceVpcEndpoint(
                self, endpoint_id,
                vpc=self.network.vpc,
                service=service,
                private_dns_enabled=True,
                security_groups=[endpoint_security.security_group],
                subnets=self.network.isolated_subnets(),
            )
            self.registry_endpoints.append(endpoint)

    def _add_capacity(self, node_security: SecurityGroupConstruct,
                      instance_type: str, node_count: int) -> None:
        """Add a non-scaling group of ECS-optimized nodes"""
        self.capacity: autoscaling.AutoScalingGroup = self.cluster.add_capacity(
            "DefaultAutoScalingGroup",
            instance_type=ec2.InstanceType(instance_type),
            machine_image=ecs.EcsOptimizedImage.amazon_linux2(),
            allow_all_outbound=True,
            min_capacity=node_count,
            max_capacity=node_count,
            vpc_subnets=self.network.public_subnets(),
            associate_public_ip_address=True,
        )
        self.capacity.add_security_group(node_security.security_group)
        logger.info(f"Declared fixed capacity of {node_count} x {instance_type}")

    @property
    def cluster_name(self) -> str:
        return self.cluster.cluster_name

    def _apply_tags(self) -> None:
        """Apply consistent tags to the cluster resources"""
        Tags.of(self).add("Project", "s2s-voip-gateway")

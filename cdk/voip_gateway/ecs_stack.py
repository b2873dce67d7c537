"""
S2S VoIP Gateway Container Stack
"""

import aws_cdk as cdk
from constructs import Construct

from .config import GatewayConfig
from .constructs.cluster import ClusterConstruct
from .constructs.iam import IdentityConstruct
from .constructs.network import NetworkConstruct
from .constructs.secrets import SecretsConstruct
from .constructs.security import (
    SecurityGroupConstruct,
    https_from_network_rule,
    rtp_rule,
    sip_rule,
)
from .constructs.workload import WorkloadConstruct, container_image
from .outputs import emit_container_outputs
from .nag_suppressions import apply_common_suppressions, apply_container_suppressions


class VoipGatewayContainerStack(cdk.Stack):
    """
    Runs the gateway as a host-networked ECS service on a fixed-size EC2 cluster.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 config: GatewayConfig, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config.validate()

        self._create_network()
        self._create_cluster()
        self._create_workload()

        emit_container_outputs(self, self.network, self.cluster, self.workload)

        apply_common_suppressions(self)
        apply_container_suppressions(self)

    def _create_network(self) -> None:
        """Create the VPC and both security groups"""
        self.network = NetworkConstruct(
            self, "Network",
            settings=self.config.network,
            include_isolated_subnets=True
        )

        self.endpoint_security = SecurityGroupConstruct(
            self, "VpcEndpointSecurityGroup",
            vpc=self.network.vpc,
            description="Security group for VPC endpoints",
            rules=[https_from_network_rule(self.network.vpc.vpc_cidr_block)]
        )

        self.instance_security = SecurityGroupConstruct(
            self, "InstanceSecurityGroup",
            vpc=self.network.vpc,
            description="Security group for S2S VoIP Gateway",
            rules=[sip_rule(self.config.sip_port), rtp_rule(self.config.rtp)]
        )

    def _create_cluster(self) -> None:
        """Create the cluster with its fixed worker capacity"""
        settings = self.config.cluster
        self.cluster = ClusterConstruct(
            self, "Cluster",
            network=self.network,
            node_security=self.instance_security,
            endpoint_security=self.endpoint_security,
            instance_type=settings.instance_type,
            node_count=settings.node_count,
            container_insights=settings.container_insights
        )

    def _create_workload(self) -> None:
        """Create roles, the credential secret and the service"""
        settings = self.config.cluster

        self.identity = IdentityConstruct(self, "IAM")
        self.task_execution_role = self.identity.task_execution_role()
        self.task_role = self.identity.task_role()

        # The execution role resolves secrets when the task starts
        self.secrets = SecretsConstruct(
            self, "Secrets",
            secret_name=settings.secret_name,
            fields=self.config.sip.as_secret_fields(),
            readers=[self.task_execution_role]
        )

        self.workload = WorkloadConstruct(
            self, "Workload",
            cluster=self.cluster,
            execution_role=self.task_execution_role,
            task_role=self.task_role,
            image=container_image(settings.image, settings.image_directory),
            secrets=self.secrets,
            rtp=self.config.rtp,
            cpu=settings.cpu,
            memory_mib=settings.memory_mib,
            log_stream_prefix=settings.log_stream_prefix,
            desired_count=1,
            min_healthy_percent=0,
            max_healthy_percent=100
        )

"""
Network Construct for the gateway VPC and its subnets
"""

import logging
import re

from aws_cdk import (
    aws_ec2 as ec2,
    Stack,
    Tags,
    Token,
)
from constructs import Construct

from ..config import NetworkSettings
from ..errors import TopologyResolutionError

logger = logging.getLogger(__name__)

VPC_ID_PATTERN = re.compile(r"^vpc-([0-9a-f]{8}|[0-9a-f]{17})$")


class NetworkConstruct(Construct):
    """
    Allocates a fresh VPC, or resolves an existing one by identifier.

    A fresh VPC has one public subnet per availability zone and, when
    ``include_isolated_subnets`` is set, one isolated private subnet per zone.
    There are no NAT gateways; public egress only exists from public subnets.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 settings: NetworkSettings,
                 include_isolated_subnets: bool = False, **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.settings = settings
        self.include_isolated_subnets = include_isolated_subnets
        self.is_lookup = bool(settings.vpc_id)

        if self.is_lookup:
            self._resolve_vpc(settings.vpc_id)
        else:
            self._create_vpc()

        self._apply_tags()

    def _create_vpc(self) -> None:
        """Create a VPC spanning the requested zones"""
        subnet_configuration = [
            ec2.SubnetConfiguration(
                name="public",
                subnet_type=ec2.SubnetType.PUBLIC,
                cidr_mask=self.settings.cidr_mask,
            )
        ]
        if self.include_isolated_subnets:
            subnet_configuration.append(
                ec2.SubnetConfiguration(
                    name="private",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=self.settings.cidr_mask,
                )
            )

        # Public subnets give instances a route out, so no NAT gateways
        self.vpc = ec2.Vpc(
            self, "VPC",
            ip_addresses=ec2.IpAddresses.cidr(self.settings.cidr),
            max_azs=self.settings.max_azs,
            nat_gateways=0,
            subnet_configuration=subnet_configuration,
        )
        logger.info(
            f"Declaring new VPC {self.settings.cidr} across {self.settings.max_azs} AZs "
            f"with {len(subnet_configuration)} subnet group(s) of /{self.settings.cidr_mask}")

    def _resolve_vpc(self, vpc_id: str) -> None:
        """Look up an existing VPC; its subnets are used as-is"""
        if not VPC_ID_PATTERN.match(vpc_id):
            raise TopologyResolutionError(
                vpc_id, f"Network identifier is not a valid VPC ID: {vpc_id}")

        stack = Stack.of(self)
        if Token.is_unresolved(stack.account) or Token.is_unresolved(stack.region):
            raise TopologyResolutionError(
                vpc_id,
                "Resolving an existing VPC requires the stack to have an explicit account and region")

        self.vpc = ec2.Vpc.from_lookup(self, "VPC", vpc_id=vpc_id)
        if not self.vpc.public_subnets:
            raise TopologyResolutionError(
                vpc_id, f"VPC {vpc_id} has no public subnets for placement")
        logger.info(f"Using existing VPC {vpc_id}; new resources go in its public subnets")

    @property
    def vpc_id(self) -> str:
        return self.vpc.vpc_id

    @property
    def has_isolated_subnets(self) -> bool:
        return len(self.vpc.isolated_subnets) > 0

    def public_subnets(self) -> ec2.SubnetSelection:
        """Placement for instances and worker nodes"""
        return ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC)

    def isolated_subnets(self) -> ec2.SubnetSelection:
        """Placement for private endpoints"""
        return ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED)

    def _apply_tags(self) -> None:
        """Apply consistent tags to the network resources"""
        Tags.of(self).add("Project", "s2s-voip-gateway")

"""
Compute Construct for the single gateway EC2 instance
"""

import logging
from typing import Sequence

from aws_cdk import (
    aws_ec2 as ec2,
    aws_iam as iam,
    Tags,
)
from constructs import Construct

from ..errors import TopologyConfigurationError
from .network import NetworkConstruct
from .security import SecurityGroupConstruct

logger = logging.getLogger(__name__)


class ComputeConstruct(Construct):
    """
    Places one instance in a public subnet with a public IP.

    The bootstrap commands run once at first boot as user data; what they
    install is up to the caller.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 network: NetworkConstruct,
                 security: SecurityGroupConstruct,
                 role: iam.IRole,
                 key_pair_name: str,
                 instance_type: str = "t3.micro",
                 bootstrap_commands: Sequence[str] = (),
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        if security.vpc is not network.vpc:
            raise TopologyConfigurationError(
                "Instance security group belongs to a different network",
                parameter="security_group", value=construct_id)
        if not key_pair_name:
            raise TopologyConfigurationError(
                "A key pair name is required", parameter="key_pair_name", value=key_pair_name)

        self.key_pair_name = key_pair_name

        user_data = ec2.UserData.for_linux()
        user_data.add_commands(*bootstrap_commands)

        self.instance = ec2.Instance(
            self, "VoipGatewayServer",
            vpc=network.vpc,
            vpc_subnets=network.public_subnets(),
            instance_type=ec2.InstanceType(instance_type),
            key_pair=ec2.KeyPair.from_key_pair_name(self, "VoipGatewayKeypair", key_pair_name),
            machine_image=ec2.MachineImage.latest_amazon_linux2(),
            security_group=security.security_group,
            associate_public_ip_address=True,
            user_data=user_data,
            role=role,
        )

        logger.info(f"Declared {instance_type} instance with key pair {key_pair_name} "
                    f"and {len(bootstrap_commands)} bootstrap command(s)")
        Tags.of(self).add("Project", "s2s-voip-gateway")

    @property
    def public_ip(self) -> str:
        return self.instance.instance_public_ip

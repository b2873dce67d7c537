"""
S2S VoIP Gateway EC2 Stack
"""

import aws_cdk as cdk
from constructs import Construct

from .config import GatewayConfig
from .constructs.compute import ComputeConstruct
from .constructs.iam import IdentityConstruct
from .constructs.network import NetworkConstruct
from .constructs.security import SecurityGroupConstruct, rtp_rule, sip_rule, ssh_rule
from .outputs import emit_instance_outputs
from .nag_suppressions import apply_common_suppressions, apply_instance_suppressions


class VoipGatewayEC2Stack(cdk.Stack):
    """
    Runs the gateway directly on one EC2 instance with its runtime installed at boot.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 config: GatewayConfig, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config.validate()

        # 1. Network: public subnets only
        self.network = NetworkConstruct(
            self, "Network",
            settings=config.network,
            include_isolated_subnets=False
        )

        # 2. Security group for SIP, RTP and SSH
        self.security = SecurityGroupConstruct(
            self, "VoipGatewaySG",
            vpc=self.network.vpc,
            description="Allow SSH, SIP, and RTP traffic",
            rules=[sip_rule(config.sip_port), rtp_rule(config.rtp), ssh_rule()]
        )

        # 3. Instance role
        self.identity = IdentityConstruct(self, "IAM")
        self.instance_role = self.identity.instance_role()

        # 4. The instance
        self.compute = ComputeConstruct(
            self, "Compute",
            network=self.network,
            security=self.security,
            role=self.instance_role,
            key_pair_name=config.instance.key_pair_name,
            instance_type=config.instance.instance_type,
            bootstrap_commands=config.instance.bootstrap_commands
        )

        emit_instance_outputs(self, self.compute)

        apply_common_suppressions(self)
        apply_instance_suppressions(self)

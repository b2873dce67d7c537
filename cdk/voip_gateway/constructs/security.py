"""
Security Construct for security groups and their ingress rules
"""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Iterable, List

from aws_cdk import (
    aws_ec2 as ec2,
    Tags,
    Token,
)
from constructs import Construct

from ..config import RtpPortWindow
from ..errors import TopologyConfigurationError

logger = logging.getLogger(__name__)

ANY_IPV4 = "0.0.0.0/0"
PROTOCOLS = ("tcp", "udp")


@dataclass(frozen=True)
class TrafficRule:
    """One permitted inbound pattern; ``to_port`` is inclusive."""
    source: str
    protocol: str
    from_port: int
    to_port: int
    description: str

    def validate(self) -> None:
        if self.protocol not in PROTOCOLS:
            raise TopologyConfigurationError(
                f"Unsupported protocol for rule '{self.description}'",
                parameter="protocol", value=self.protocol)
        if not 0 <= self.from_port <= self.to_port <= 65535:
            raise TopologyConfigurationError(
                f"Invalid port range {self.from_port}-{self.to_port} for rule '{self.description}'",
                parameter="port_range", value=(self.from_port, self.to_port))

    def peer(self) -> ec2.IPeer:
        if self.source == ANY_IPV4:
            return ec2.Peer.any_ipv4()
        return ec2.Peer.ipv4(self.source)

    def port(self) -> ec2.Port:
        if self.protocol == "udp":
            if self.from_port == self.to_port:
                return ec2.Port.udp(self.from_port)
            return ec2.Port.udp_range(self.from_port, self.to_port)
        if self.from_port == self.to_port:
            return ec2.Port.tcp(self.from_port)
        return ec2.Port.tcp_range(self.from_port, self.to_port)


def sip_rule(port: int = 5060) -> TrafficRule:
    return TrafficRule(ANY_IPV4, "udp", port, port, f"Allow SIP traffic on port {port}")


def rtp_rule(window: RtpPortWindow) -> TrafficRule:
    """Covers exactly ``[base_port, base_port + port_count)``"""
    window.validate()
    return TrafficRule(
        ANY_IPV4, "udp", window.base_port, window.last_port,
        f"Allow RTP traffic on ports {window.base_port}-{window.last_port}")


def ssh_rule() -> TrafficRule:
    return TrafficRule(ANY_IPV4, "tcp", 22, 22, "Allow SSH traffic")


def https_from_network_rule(cidr_block: str) -> TrafficRule:
    return TrafficRule(cidr_block, "tcp", 443, 443, "Allow HTTPS access from within the VPC")


class SecurityGroupConstruct(Construct):
    """
    One security group for one workload, with ingress from a traffic profile.

    Rules are added in the order given. All outbound traffic is allowed.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 vpc: ec2.IVpc, description: str,
                 rules: Iterable[TrafficRule], **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.vpc = vpc
        self.rules: List[TrafficRule] = list(rules)
        for rule in self.rules:
            # Token sources (e.g. the VPC's own CIDR) are checked by the backend
            if not Token.is_unresolved(rule.source) and rule.source != ANY_IPV4:
                _check_cidr(rule)
            rule.validate()

        self.security_group = ec2.SecurityGroup(
            self, "SecurityGroup",
            vpc=vpc,
            description=description,
            allow_all_outbound=True,
        )
        for rule in self.rules:
            self.security_group.add_ingress_rule(rule.peer(), rule.port(), rule.description)

        logger.info(f"Declared security group '{description}' with {len(self.rules)} ingress rule(s)")
        Tags.of(self).add("Project", "s2s-voip-gateway")


def _check_cidr(rule: TrafficRule) -> None:
    try:
        ipaddress.IPv4Network(rule.source, strict=False)
    except ValueError as e:
        raise TopologyConfigurationError(
            f"Invalid source CIDR for rule '{rule.description}'",
            parameter="source", value=rule.source) from e

"""Unit tests for traffic profiles and the security group construct."""

from __future__ import annotations

import aws_cdk as cdk
import pytest
from aws_cdk import aws_ec2 as ec2
from aws_cdk.assertions import Match, Template

from voip_gateway.config import RtpPortWindow
from voip_gateway.constructs.security import (
    ANY_IPV4,
    SecurityGroupConstruct,
    TrafficRule,
    https_from_network_rule,
    rtp_rule,
    sip_rule,
    ssh_rule,
)
from voip_gateway.errors import TopologyConfigurationError


def _security_group_template(rules) -> Template:
    stack = cdk.Stack(cdk.App(), "SecurityStack")
    vpc = ec2.Vpc(stack, "Vpc", max_azs=1, nat_gateways=0, subnet_configuration=[
        ec2.SubnetConfiguration(name="public", subnet_type=ec2.SubnetType.PUBLIC)])
    SecurityGroupConstruct(stack, "Gateway", vpc=vpc, description="gateway", rules=rules)
    return Template.from_stack(stack)


class TestTrafficProfiles:
    """Tests for the known rule builders."""

    @pytest.mark.parametrize("base,count", [(10000, 10000), (5062, 1), (30000, 35536)])
    def test_rtp_rule_covers_half_open_window(self, base: int, count: int) -> None:
        rule = rtp_rule(RtpPortWindow(base, count))

        assert (rule.from_port, rule.to_port) == (base, base + count - 1)
        assert rule.protocol == "udp"
        assert rule.source == ANY_IPV4

    def test_rtp_rule_rejects_empty_window(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            rtp_rule(RtpPortWindow(10000, 0))

    def test_sip_rule(self) -> None:
        rule = sip_rule()

        assert (rule.protocol, rule.from_port, rule.to_port) == ("udp", 5060, 5060)

    def test_ssh_rule(self) -> None:
        assert (ssh_rule().protocol, ssh_rule().from_port) == ("tcp", 22)

    def test_https_rule_scoped_to_network(self) -> None:
        rule = https_from_network_rule("10.0.0.0/16")

        assert rule.source == "10.0.0.0/16"
        assert (rule.protocol, rule.from_port) == ("tcp", 443)


class TestTrafficRuleValidation:
    """Tests for rule validation before any resource is declared."""

    def test_reversed_range_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            TrafficRule(ANY_IPV4, "udp", 20000, 10000, "reversed").validate()

    def test_port_above_65535_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            TrafficRule(ANY_IPV4, "tcp", 65535, 65536, "too high").validate()

    def test_unknown_protocol_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            TrafficRule(ANY_IPV4, "icmp", 0, 0, "ping").validate()

    def test_bad_cidr_rejected_by_construct(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            _security_group_template([TrafficRule("10.0.0.0/99", "tcp", 443, 443, "bad")])

        assert exc.value.parameter == "source"


class TestSecurityGroupConstruct:
    """Tests for the synthesized security group."""

    def test_rules_rendered_in_order_with_open_egress(self) -> None:
        template = _security_group_template(
            [sip_rule(), rtp_rule(RtpPortWindow(10000, 10000)), ssh_rule()])

        template.resource_count_is("AWS::EC2::SecurityGroup", 1)
        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupIngress": [
                Match.object_like({"CidrIp": "0.0.0.0/0", "IpProtocol": "udp", "FromPort": 5060, "ToPort": 5060}),
                Match.object_like({"CidrIp": "0.0.0.0/0", "IpProtocol": "udp", "FromPort": 10000, "ToPort": 19999}),
                Match.object_like({"CidrIp": "0.0.0.0/0", "IpProtocol": "tcp", "FromPort": 22, "ToPort": 22}),
            ],
            "SecurityGroupEgress": [
                Match.object_like({"CidrIp": "0.0.0.0/0", "IpProtocol": "-1"}),
            ],
        })

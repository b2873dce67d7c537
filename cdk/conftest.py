"""Shared fixtures for the gateway stack tests."""

from __future__ import annotations

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from voip_gateway.config import GatewayConfig

TEST_ENV = cdk.Environment(account="123456789012", region="us-east-1")

EXISTING_VPC_ID = "vpc-0123456789abcdef0"

SIP_CONTEXT = {
    "sip_server": "sip.example.com",
    "sip_username": "gateway",
    "sip_password": "s3cret-value",
    "sip_realm": "example.com",
    "display_name": "Nova Sonic",
}

PUBLIC_GROUP = {
    "name": "Public",
    "type": "Public",
    "subnets": [
        {"subnetId": "subnet-aaa", "cidr": "10.0.0.0/24",
         "availabilityZone": "us-east-1a", "routeTableId": "rtb-aaa"},
        {"subnetId": "subnet-bbb", "cidr": "10.0.1.0/24",
         "availabilityZone": "us-east-1b", "routeTableId": "rtb-bbb"},
    ],
}

ISOLATED_GROUP = {
    "name": "Isolated",
    "type": "Isolated",
    "subnets": [
        {"subnetId": "subnet-iso-a", "cidr": "10.0.2.0/24",
         "availabilityZone": "us-east-1a", "routeTableId": "rtb-iso-a"},
        {"subnetId": "subnet-iso-b", "cidr": "10.0.3.0/24",
         "availabilityZone": "us-east-1b", "routeTableId": "rtb-iso-b"},
    ],
}


def lookup_context(*subnet_groups: dict, vpc_id: str = EXISTING_VPC_ID) -> dict:
    """App context that pins what ``Vpc.from_lookup`` resolves to."""
    key = (f"vpc-provider:account={TEST_ENV.account}:filter.vpc-id={vpc_id}"
           f":region={TEST_ENV.region}:returnAsymmetricSubnets=true")
    return {
        key: {
            "vpcId": vpc_id,
            "vpcCidrBlock": "10.0.0.0/16",
            "availabilityZones": [],
            "subnetGroups": list(subnet_groups),
        }
    }


@pytest.fixture
def ec2_config() -> GatewayConfig:
    """EC2 mode config with key pair k1 and default port window."""
    return GatewayConfig.from_mapping(
        {"deployment_mode": "ec2", "key_pair_name": "k1"}, environ={})


@pytest.fixture
def ecs_config() -> GatewayConfig:
    """ECS mode config with complete SIP credentials."""
    return GatewayConfig.from_mapping(
        {"deployment_mode": "ecs", **SIP_CONTEXT}, environ={})


@pytest.fixture
def synth():
    """Return a helper that builds a stack in a fresh app and its template."""

    def _synth(stack_class, config: GatewayConfig, env: cdk.Environment | None = TEST_ENV,
               context: dict | None = None):
        app = cdk.App(context=context)
        stack = stack_class(app, "TestStack", config=config, env=env)
        return stack, Template.from_stack(stack)

    return _synth

#!/usr/bin/env python3
"""
S2S VoIP Gateway CDK App
Main entry point for CDK deployment
"""

import logging
import os
import sys

import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks

from voip_gateway.config import GatewayConfig
from voip_gateway.ec2_stack import VoipGatewayEC2Stack
from voip_gateway.ecs_stack import VoipGatewayContainerStack
from voip_gateway.errors import VoipGatewayInfraError

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = cdk.App()

# Get environment from CDK context or environment variables
account = app.node.try_get_context("account") or os.environ.get("CDK_DEFAULT_ACCOUNT")
region = app.node.try_get_context("region") or os.environ.get("CDK_DEFAULT_REGION") or "us-west-2"
env = cdk.Environment(account=account, region=region)

try:
    config = GatewayConfig.from_context(app)

    if config.is_container_mode:
        VoipGatewayContainerStack(
            app,
            "VoipGatewayContainerStack",
            config=config,
            description="S2S VoIP Gateway - ECS service with host networking",
            env=env
        )
    else:
        VoipGatewayEC2Stack(
            app,
            "VoipGatewayEC2Stack",
            config=config,
            description="S2S VoIP Gateway - EC2 instance",
            env=env
        )
except VoipGatewayInfraError as e:
    logger.error(f"Cannot assemble the gateway stack: {e}")
    sys.exit(1)

# Add cdk-nag checks (unless explicitly skipped)
if not os.environ.get("CDK_NAG_SKIP"):
    cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))

app.synth()

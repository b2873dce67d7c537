"""
Stack outputs for downstream consumers
"""

from aws_cdk import CfnOutput, Stack

from .constructs.cluster import ClusterConstruct
from .constructs.compute import ComputeConstruct
from .constructs.network import NetworkConstruct
from .constructs.workload import WorkloadConstruct


def emit_instance_outputs(stack: Stack, compute: ComputeConstruct) -> None:
    """Create outputs for the EC2 deployment"""
    CfnOutput(
        stack, "InstancePublicIP",
        value=compute.public_ip,
        description="Public IP address of the EC2 instance",
    )


def emit_container_outputs(stack: Stack, network: NetworkConstruct,
                           cluster: ClusterConstruct,
                           workload: WorkloadConstruct) -> None:
    """Create outputs for the ECS deployment"""
    CfnOutput(
        stack, "ServiceName",
        value=workload.service_name,
        description="The name of the ECS service",
    )

    CfnOutput(
        stack, "TaskDefinitionArn",
        value=workload.task_definition_arn,
        description="The ARN of the task definition",
    )

    CfnOutput(
        stack, "ClusterName",
        value=cluster.cluster_name,
        description="The name of the ECS cluster",
    )

    CfnOutput(
        stack, "VpcId",
        value=network.vpc_id,
        description="The ID of the VPC",
    )

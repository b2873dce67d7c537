"""
Common CDK-Nag suppressions for the S2S VoIP Gateway
Use this file to centrally manage suppressions across both stacks
"""

from cdk_nag import NagSuppressions
from aws_cdk import Stack

def apply_common_suppressions(stack: Stack):
    """Apply suppressions that hold for both deployment modes"""

    common_suppressions = [
        {
            "id": "AwsSolutions-IAM5",
            "reason": "Nova Sonic model invocation is granted on all models and inference profiles"
        },
        {
            "id": "AwsSolutions-EC23",
            "reason": "SIP and RTP must be reachable from any carrier or softphone address"
        },
        {
            "id": "AwsSolutions-VPC7",
            "reason": "VPC flow logs are not required for the single-gateway deployment"
        }
    ]

    NagSuppressions.add_stack_suppressions(stack, common_suppressions)

def apply_instance_suppressions(stack: Stack):
    """Apply suppressions specific to the EC2 gateway instance"""

    instance_suppressions = [
        {
            "id": "AwsSolutions-EC26",
            "reason": "The gateway instance stores no data on its root volume"
        },
        {
            "id": "AwsSolutions-EC28",
            "reason": "Detailed monitoring is not required for a single gateway instance"
        },
        {
            "id": "AwsSolutions-EC29",
            "reason": "The gateway instance is disposable and recreated from user data"
        }
    ]

    NagSuppressions.add_stack_suppressions(stack, instance_suppressions)

def apply_container_suppressions(stack: Stack):
    """Apply suppressions specific to the ECS gateway service"""

    container_suppressions = [
        {
            "id": "AwsSolutions-IAM4",
            "reason": "The ECS task execution role uses the AWS managed execution policy"
        },
        {
            "id": "AwsSolutions-ECS2",
            "reason": "Only the media port window is passed as plain environment; credentials come from Secrets Manager"
        },
        {
            "id": "AwsSolutions-SMG4",
            "reason": "SIP credentials are issued by the SIP provider and rotated there"
        },
        {
            "id": "AwsSolutions-AS3",
            "reason": "The fixed single-node capacity does not need scaling notifications"
        },
        {
            "id": "AwsSolutions-EC26",
            "reason": "Worker nodes store no data on their root volumes"
        },
        {
            "id": "AwsSolutions-L1",
            "reason": "The ECS drain hook Lambda runtime is managed by CDK"
        },
        {
            "id": "AwsSolutions-SNS2",
            "reason": "The ECS drain hook topic carries lifecycle events only"
        },
        {
            "id": "AwsSolutions-SNS3",
            "reason": "The ECS drain hook topic is only published to by Auto Scaling"
        }
    ]

    NagSuppressions.add_stack_suppressions(stack, container_suppressions)

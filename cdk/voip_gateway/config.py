"""
Configuration for the VoIP gateway stacks.

Values are resolved in three layers: an optional YAML file named by the
``config_file`` context key, CDK context values (``cdk deploy -c key=value``)
which override the file, and environment variables which only fill values
still missing.
"""

import ipaddress
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .errors import TopologyConfigurationError

logger = logging.getLogger(__name__)

DEPLOYMENT_MODES = ("ec2", "ecs")

DEFAULT_BOOTSTRAP_COMMANDS = (
    "yum update -y",
    "yum install -y java-24-amazon-corretto-devel maven git",
    'echo "Dependency installation completed"',
)

# Context keys that may also come from the environment
ENVIRONMENT_FALLBACKS = {
    "deployment_mode": "DEPLOYMENT_MODE",
    "key_pair_name": "VOIP_KEY_PAIR_NAME",
    "vpc_id": "VOIP_VPC_ID",
    "sip_server": "SIP_SERVER",
    "sip_username": "SIP_USERNAME",
    "sip_password": "SIP_PASSWORD",
    "sip_realm": "SIP_REALM",
    "display_name": "SIP_DISPLAY_NAME",
}

CONTEXT_KEYS = (
    "deployment_mode", "vpc_id", "max_azs", "cidr", "cidr_mask",
    "base_rtp_port", "rtp_port_count", "sip_port",
    "sip_server", "sip_username", "sip_password", "sip_realm", "display_name",
    "key_pair_name", "instance_type", "bootstrap_commands",
    "node_instance_type", "node_count", "container_insights",
    "image", "image_directory", "cpu", "memory_mib", "secret_name",
    "log_stream_prefix",
)


@dataclass(frozen=True)
class RtpPortWindow:
    """Media port window; covers ``[base_port, base_port + port_count)``."""
    base_port: int = 10000
    port_count: int = 10000

    @property
    def last_port(self) -> int:
        return self.base_port + self.port_count - 1

    def validate(self) -> None:
        if self.port_count <= 0:
            raise TopologyConfigurationError(
                "RTP port count must be positive",
                parameter="rtp_port_count", value=self.port_count)
        if not 1 <= self.base_port <= 65535:
            raise TopologyConfigurationError(
                "RTP base port must be between 1 and 65535",
                parameter="base_rtp_port", value=self.base_port)
        if self.base_port + self.port_count > 65536:
            raise TopologyConfigurationError(
                f"RTP port window {self.base_port}+{self.port_count} exceeds port 65535",
                parameter="rtp_port_count", value=self.port_count)

    def contains(self, port: int) -> bool:
        return self.base_port <= port <= self.last_port


@dataclass(frozen=True)
class NetworkSettings:
    vpc_id: Optional[str] = None
    max_azs: int = 2
    cidr: str = "10.0.0.0/16"
    cidr_mask: int = 24

    def validate(self, subnet_groups: int) -> None:
        if self.max_azs < 1:
            raise TopologyConfigurationError(
                "At least one availability zone is required",
                parameter="max_azs", value=self.max_azs)
        if not 16 <= self.cidr_mask <= 28:
            raise TopologyConfigurationError(
                "Subnet mask must be between /16 and /28",
                parameter="cidr_mask", value=self.cidr_mask)
        if self.vpc_id:
            # Subnets of an existing network are not allocated here
            return
        try:
            network = ipaddress.ip_network(self.cidr)
        except ValueError as e:
            raise TopologyConfigurationError(
                f"Invalid network address block: {e}",
                parameter="cidr", value=self.cidr) from e
        if network.prefixlen > self.cidr_mask:
            raise TopologyConfigurationError(
                f"Subnet mask /{self.cidr_mask} is wider than network {self.cidr}",
                parameter="cidr_mask", value=self.cidr_mask)
        subnet_count = self.max_azs * subnet_groups
        available = 2 ** (self.cidr_mask - network.prefixlen)
        if subnet_count > available:
            raise TopologyConfigurationError(
                f"{subnet_count} subnets of /{self.cidr_mask} do not fit in {self.cidr}",
                parameter="max_azs", value=self.max_azs)


@dataclass(frozen=True)
class SipCredentials:
    server: str = ""
    username: str = ""
    password: str = ""
    realm: str = ""
    display_name: str = ""

    def as_secret_fields(self) -> Dict[str, str]:
        """Field layout stored in the credential secret"""
        return {
            "username": self.username,
            "password": self.password,
            "server": self.server,
            "realm": self.realm,
            "displayName": self.display_name,
        }

    def missing_fields(self) -> List[str]:
        return [name for name, value in (
            ("sip_server", self.server),
            ("sip_username", self.username),
            ("sip_password", self.password),
            ("sip_realm", self.realm),
            ("display_name", self.display_name),
        ) if not value]

    def __repr__(self) -> str:
        return f"SipCredentials(server='{self.server}', username='{self.username}', password='***')"


@dataclass(frozen=True)
class InstanceSettings:
    key_pair_name: Optional[str] = None
    instance_type: str = "t3.micro"
    bootstrap_commands: Tuple[str, ...] = DEFAULT_BOOTSTRAP_COMMANDS


@dataclass(frozen=True)
class ClusterSettings:
    instance_type: str = "t3.medium"
    node_count: int = 1
    container_insights: bool = True
    image: str = "public.ecr.aws/docker/library/amazoncorretto:24"
    image_directory: Optional[str] = None
    cpu: int = 1024
    memory_mib: int = 1024
    secret_name: str = "s2s-voip-gateway/sip-server"
    log_stream_prefix: str = "voip-gateway"


@dataclass(frozen=True)
class GatewayConfig:
    """All parameters needed to assemble either deployment mode."""
    deployment_mode: str = "ec2"
    network: NetworkSettings = field(default_factory=NetworkSettings)
    rtp: RtpPortWindow = field(default_factory=RtpPortWindow)
    sip_port: int = 5060
    sip: SipCredentials = field(default_factory=SipCredentials)
    instance: InstanceSettings = field(default_factory=InstanceSettings)
    cluster: ClusterSettings = field(default_factory=ClusterSettings)

    @property
    def is_container_mode(self) -> bool:
        return self.deployment_mode == "ecs"

    def validate(self) -> "GatewayConfig":
        """Fail fast on anything that cannot produce a consistent graph"""
        if self.deployment_mode not in DEPLOYMENT_MODES:
            raise TopologyConfigurationError(
                f"Unknown deployment mode, expected one of {', '.join(DEPLOYMENT_MODES)}",
                parameter="deployment_mode", value=self.deployment_mode)

        self.rtp.validate()
        if not 1 <= self.sip_port <= 65535:
            raise TopologyConfigurationError(
                "SIP port must be between 1 and 65535",
                parameter="sip_port", value=self.sip_port)
        if self.rtp.contains(self.sip_port):
            raise TopologyConfigurationError(
                "SIP port overlaps the RTP port window",
                parameter="sip_port", value=self.sip_port)

        # public only in VM mode, public + isolated in container mode
        self.network.validate(subnet_groups=2 if self.is_container_mode else 1)

        if self.is_container_mode:
            missing = self.sip.missing_fields()
            if missing:
                raise TopologyConfigurationError(
                    f"Missing SIP credential fields: {', '.join(missing)}",
                    parameter=missing[0], value=None)
            if self.cluster.node_count < 1:
                raise TopologyConfigurationError(
                    "Cluster node count must be at least 1",
                    parameter="node_count", value=self.cluster.node_count)
            if self.cluster.cpu <= 0 or self.cluster.memory_mib <= 0:
                raise TopologyConfigurationError(
                    "Container CPU and memory reservations must be positive",
                    parameter="cpu", value=self.cluster.cpu)
        elif not self.instance.key_pair_name:
            raise TopologyConfigurationError(
                "A key pair name is required for the EC2 deployment",
                parameter="key_pair_name", value=None)
        return self

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any],
                     environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """Build a validated config from flat context-style keys."""
        environ = os.environ if environ is None else environ
        merged: Dict[str, Any] = {k: v for k, v in values.items() if v is not None}
        for key, env_name in ENVIRONMENT_FALLBACKS.items():
            if key not in merged and environ.get(env_name):
                merged[key] = environ[env_name]

        unknown = sorted(set(merged) - set(CONTEXT_KEYS))
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        commands = merged.get("bootstrap_commands")
        if commands is None:
            commands = DEFAULT_BOOTSTRAP_COMMANDS
        elif isinstance(commands, str):
            commands = tuple(line for line in commands.splitlines() if line.strip())

        config = cls(
            deployment_mode=str(merged.get("deployment_mode", "ec2")).lower(),
            network=NetworkSettings(
                vpc_id=merged.get("vpc_id") or None,
                max_azs=_as_int(merged, "max_azs", 2),
                cidr=str(merged.get("cidr", "10.0.0.0/16")),
                cidr_mask=_as_int(merged, "cidr_mask", 24),
            ),
            rtp=RtpPortWindow(
                base_port=_as_int(merged, "base_rtp_port", 10000),
                port_count=_as_int(merged, "rtp_port_count", 10000),
            ),
            sip_port=_as_int(merged, "sip_port", 5060),
            sip=SipCredentials(
                server=str(merged.get("sip_server", "")),
                username=str(merged.get("sip_username", "")),
                password=str(merged.get("sip_password", "")),
                realm=str(merged.get("sip_realm", "")),
                display_name=str(merged.get("display_name", "")),
            ),
            instance=InstanceSettings(
                key_pair_name=merged.get("key_pair_name") or None,
                instance_type=str(merged.get("instance_type", "t3.micro")),
                bootstrap_commands=tuple(commands),
            ),
            cluster=ClusterSettings(
                instance_type=str(merged.get("node_instance_type", "t3.medium")),
                node_count=_as_int(merged, "node_count", 1),
                container_insights=_as_bool(merged, "container_insights", True),
                image=str(merged.get("image", ClusterSettings.image)),
                image_directory=merged.get("image_directory") or None,
                cpu=_as_int(merged, "cpu", 1024),
                memory_mib=_as_int(merged, "memory_mib", 1024),
                secret_name=str(merged.get("secret_name", ClusterSettings.secret_name)),
                log_stream_prefix=str(merged.get("log_stream_prefix", "voip-gateway")),
            ),
        )
        return config.validate()

    @classmethod
    def from_context(cls, app, environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """Load config from a CDK app's context, an optional YAML file and the environment"""
        values: Dict[str, Any] = {}

        config_file = app.node.try_get_context("config_file")
        if config_file:
            values.update(load_config_file(config_file))

        for key in CONTEXT_KEYS:
            value = app.node.try_get_context(key)
            if value is not None:
                values[key] = value

        return cls.from_mapping(values, environ)


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a flat YAML mapping of configuration keys"""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise TopologyConfigurationError(
            f"Could not load configuration file: {e}",
            parameter="config_file", value=path) from e
    if not isinstance(data, dict):
        raise TopologyConfigurationError(
            "Configuration file must contain a mapping",
            parameter="config_file", value=path)
    logger.info(f"Loaded {len(data)} configuration values from {path}")
    return data


def _as_int(values: Mapping[str, Any], key: str, default: int) -> int:
    value = values.get(key, default)
    # bool is an int subclass; fractional floats would truncate
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise TopologyConfigurationError(
            f"{key} must be an integer", parameter=key, value=value)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise TopologyConfigurationError(
            f"{key} must be an integer", parameter=key, value=value) from e


def _as_bool(values: Mapping[str, Any], key: str, default: bool) -> bool:
    value = values.get(key, default)
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise TopologyConfigurationError(
        f"{key} must be true or false", parameter=key, value=value)

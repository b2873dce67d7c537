"""Unit tests for gateway configuration loading and validation."""

from __future__ import annotations

import aws_cdk as cdk
import pytest

from voip_gateway.config import (
    DEFAULT_BOOTSTRAP_COMMANDS,
    GatewayConfig,
    NetworkSettings,
    RtpPortWindow,
    load_config_file,
)
from voip_gateway.errors import TopologyConfigurationError

from conftest import SIP_CONTEXT


class TestRtpPortWindow:
    """Tests for the media port window."""

    def test_defaults(self) -> None:
        window = RtpPortWindow()

        assert window.base_port == 10000
        assert window.port_count == 10000
        assert window.last_port == 19999

    @pytest.mark.parametrize("base,count,last", [(10000, 1, 10000), (1, 65535, 65535), (40000, 25536, 65535)])
    def test_last_port_is_exclusive_upper_bound_minus_one(self, base: int, count: int, last: int) -> None:
        window = RtpPortWindow(base, count)
        window.validate()

        assert window.last_port == last

    def test_zero_count_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            RtpPortWindow(10000, 0).validate()

        assert exc.value.parameter == "rtp_port_count"

    def test_window_past_65535_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            RtpPortWindow(60000, 5537).validate()

    def test_base_port_zero_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            RtpPortWindow(0, 10).validate()

        assert exc.value.parameter == "base_rtp_port"


class TestNetworkSettings:
    """Tests for subnet layout validation."""

    def test_default_layout_fits(self) -> None:
        NetworkSettings().validate(subnet_groups=2)

    def test_too_many_subnets_for_address_space(self) -> None:
        settings = NetworkSettings(cidr="10.0.0.0/24", cidr_mask=26, max_azs=3)

        with pytest.raises(TopologyConfigurationError) as exc:
            settings.validate(subnet_groups=2)

        assert "do not fit" in str(exc.value)

    def test_mask_out_of_range(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            NetworkSettings(cidr_mask=30).validate(subnet_groups=1)

    def test_zero_zones_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            NetworkSettings(max_azs=0).validate(subnet_groups=1)

    def test_existing_network_skips_address_checks(self) -> None:
        NetworkSettings(vpc_id="vpc-0123456789abcdef0", cidr="not-a-cidr").validate(subnet_groups=2)


class TestGatewayConfig:
    """Tests for GatewayConfig.from_mapping and from_context."""

    def test_ec2_defaults(self, ec2_config: GatewayConfig) -> None:
        assert ec2_config.deployment_mode == "ec2"
        assert ec2_config.instance.key_pair_name == "k1"
        assert ec2_config.instance.instance_type == "t3.micro"
        assert ec2_config.instance.bootstrap_commands == DEFAULT_BOOTSTRAP_COMMANDS
        assert ec2_config.network.vpc_id is None
        assert ec2_config.sip_port == 5060

    def test_ecs_defaults(self, ecs_config: GatewayConfig) -> None:
        assert ecs_config.is_container_mode
        assert ecs_config.cluster.node_count == 1
        assert ecs_config.cluster.instance_type == "t3.medium"
        assert ecs_config.sip.as_secret_fields()["displayName"] == "Nova Sonic"

    def test_string_context_values_are_coerced(self) -> None:
        config = GatewayConfig.from_mapping(
            {"key_pair_name": "k1", "base_rtp_port": "20000", "rtp_port_count": "500",
             "container_insights": "false"},
            environ={})

        assert config.rtp == RtpPortWindow(20000, 500)
        assert config.cluster.container_insights is False

    def test_non_integer_port_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            GatewayConfig.from_mapping({"key_pair_name": "k1", "base_rtp_port": "ten"}, environ={})

        assert exc.value.parameter == "base_rtp_port"

    def test_fractional_port_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            GatewayConfig.from_mapping({"key_pair_name": "k1", "base_rtp_port": 10000.5}, environ={})

        assert exc.value.parameter == "base_rtp_port"

    def test_whole_float_port_accepted(self) -> None:
        config = GatewayConfig.from_mapping(
            {"key_pair_name": "k1", "base_rtp_port": 12000.0}, environ={})

        assert config.rtp.base_port == 12000

    def test_ec2_requires_key_pair(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            GatewayConfig.from_mapping({"deployment_mode": "ec2"}, environ={})

        assert exc.value.parameter == "key_pair_name"

    def test_ecs_requires_all_sip_fields(self) -> None:
        values = {"deployment_mode": "ecs", **SIP_CONTEXT}
        del values["sip_realm"]

        with pytest.raises(TopologyConfigurationError) as exc:
            GatewayConfig.from_mapping(values, environ={})

        assert "sip_realm" in str(exc.value)

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            GatewayConfig.from_mapping({"deployment_mode": "lambda", "key_pair_name": "k1"}, environ={})

    def test_sip_port_inside_rtp_window_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            GatewayConfig.from_mapping(
                {"key_pair_name": "k1", "sip_port": 10500}, environ={})

        assert exc.value.parameter == "sip_port"

    def test_zero_node_count_rejected(self) -> None:
        with pytest.raises(TopologyConfigurationError):
            GatewayConfig.from_mapping(
                {"deployment_mode": "ecs", "node_count": 0, **SIP_CONTEXT}, environ={})

    def test_environment_fills_missing_values(self) -> None:
        environ = {
            "DEPLOYMENT_MODE": "ecs",
            "SIP_SERVER": "sip.example.com",
            "SIP_USERNAME": "gateway",
            "SIP_PASSWORD": "pw",
            "SIP_REALM": "example.com",
            "SIP_DISPLAY_NAME": "Nova",
        }

        config = GatewayConfig.from_mapping({"sip_username": "from-context"}, environ=environ)

        assert config.is_container_mode
        assert config.sip.username == "from-context"
        assert config.sip.server == "sip.example.com"

    def test_bootstrap_commands_from_multiline_string(self) -> None:
        config = GatewayConfig.from_mapping(
            {"key_pair_name": "k1", "bootstrap_commands": "yum update -y\n\necho done\n"},
            environ={})

        assert config.instance.bootstrap_commands == ("yum update -y", "echo done")

    def test_password_not_in_repr(self, ecs_config: GatewayConfig) -> None:
        assert "s3cret-value" not in repr(ecs_config.sip)

    def test_from_context_reads_yaml_then_context(self, tmp_path) -> None:
        config_file = tmp_path / "gateway.yaml"
        config_file.write_text("key_pair_name: from-file\nrtp_port_count: 200\ninstance_type: t3.small\n")
        app = cdk.App(context={"config_file": str(config_file), "key_pair_name": "from-context"})

        config = GatewayConfig.from_context(app, environ={})

        assert config.instance.key_pair_name == "from-context"
        assert config.instance.instance_type == "t3.small"
        assert config.rtp.port_count == 200


class TestLoadConfigFile:
    """Tests for YAML configuration files."""

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(TopologyConfigurationError) as exc:
            load_config_file(str(tmp_path / "absent.yaml"))

        assert exc.value.parameter == "config_file"

    def test_non_mapping_rejected(self, tmp_path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(TopologyConfigurationError):
            load_config_file(str(config_file))

    def test_empty_file_is_empty_mapping(self, tmp_path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_config_file(str(config_file)) == {}

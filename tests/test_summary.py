"""Tests for tunnel summaries, ingress flattening and display filters."""

import pytest

from tunneldash.cloud.models import Tunnel
from tunneldash.summary import (
    HIDDEN_HTTP_MESSAGE,
    ConfigInfo,
    PortMapping,
    TunnelSummary,
    ViewOptions,
    build_configs,
    filter_and_sort,
    is_http_service,
    parse_host,
    parse_protocol,
    pick_host_port,
    resolve_connect_target,
    to_tunnel_summary,
    with_configs,
)


def make_tunnel(**overrides):
    data = {"id": "tun-1", "name": "home"}
    data.update(overrides)
    return Tunnel.model_validate(data)


class TestServiceParsing:
    @pytest.mark.parametrize(
        "service, expected",
        [
            ("ssh://localhost:22", "localhost:22"),
            ("tcp://db.internal:5432", "db.internal:5432"),
            ("http://localhost:80", "localhost"),
            ("https://app.internal", "app.internal"),
            ("localhost:3389", "localhost:3389"),
            ("", None),
            (None, None),
            ("ssh://host:notaport", None),
        ],
    )
    def test_parse_host(self, service, expected):
        assert parse_host(service) == expected

    @pytest.mark.parametrize(
        "service, expected",
        [
            ("ssh://localhost:22", "ssh"),
            ("TCP://db:5432", "tcp"),
            ("https://app", "https"),
            ("localhost:3389", "ssh"),
            (None, None),
        ],
    )
    def test_parse_protocol(self, service, expected):
        assert parse_protocol(service) == expected

    def test_is_http_service(self):
        assert is_http_service("http://a")
        assert is_http_service("https://a")
        assert not is_http_service("ssh://a")


class TestToTunnelSummary:
    def test_port_from_metadata(self):
        summary = to_tunnel_summary(make_tunnel(metadata={"tunnelPort": "50010"}))
        assert summary.port == 50010
        assert summary.metadata == {"tunnelPort": "50010"}

    def test_port_key_precedence(self):
        summary = to_tunnel_summary(
            make_tunnel(metadata={"startPort": 1, "port": 2, "tunneldashPort": 3})
        )
        assert summary.port == 3

    def test_non_numeric_port_ignored(self):
        summary = to_tunnel_summary(make_tunnel(metadata={"port": "abc"}))
        assert summary.port is None

    def test_port_map_from_metadata(self):
        summary = to_tunnel_summary(
            make_tunnel(
                metadata={
                    "tunneldashPort": {
                        "ssh-home.example.com": 50022,
                        "rdp-home.example.com": "50089",
                        "broken": "x",
                    }
                }
            )
        )
        assert summary.port is None
        assert summary.port_map == [
            PortMapping(host="ssh-home.example.com", port=50022, proto="ssh"),
            PortMapping(host="rdp-home.example.com", port=50089, proto="rdp"),
        ]

    def test_connection_details(self):
        summary = to_tunnel_summary(
            make_tunnel(
                status="healthy",
                connections=[
                    {"colo_name": "ams01", "origin_ip": "198.51.100.4", "client_version": "2024.1.0"},
                    {"colo_name": "fra08"},
                    {"colo_name": "ams01"},
                ],
            )
        )
        assert summary.connection_ip == "198.51.100.4"
        assert summary.client_version == "2024.1.0"
        assert summary.connection_count == 3
        assert summary.colo_names == ["ams01", "fra08"]

    def test_empty_tunnel(self):
        summary = to_tunnel_summary(make_tunnel(metadata="opaque"))
        assert summary.metadata is None
        assert summary.port_map is None
        assert summary.connection_count == 0
        assert summary.colo_names == []


class TestBuildConfigs:
    def test_skips_catch_all_and_incomplete_rules(self):
        summary = TunnelSummary(id="tun-1", name="home", port=50000)
        ingress = [
            {"hostname": "ssh.example.com", "service": "ssh://localhost:22"},
            {"hostname": "web.example.com", "service": "http://localhost:8080"},
            {"service": "tcp://localhost:5432"},
            {"service": "http_status:404"},
        ]

        configs = build_configs(summary, ingress)

        assert configs == [
            ConfigInfo(
                service="ssh://localhost:22",
                proto="ssh",
                host="ssh.example.com",
                hostname="ssh.example.com",
                port=50000,
            ),
            ConfigInfo(
                service="http://localhost:8080",
                proto="http",
                host="web.example.com",
                hostname="web.example.com",
                port=50000,
            ),
        ]

    def test_port_chosen_from_port_map(self):
        summary = TunnelSummary(
            id="tun-1",
            name="home",
            port_map=[
                PortMapping(host="rdp-x", port=50089, proto="rdp"),
                PortMapping(host="ssh.example.com", port=50022, proto="ssh"),
                PortMapping(host="tcp-db", port=50032, proto="tcp"),
            ],
        )
        configs = build_configs(
            summary,
            [
                {"hostname": "ssh.example.com", "service": "ssh://localhost:22"},
                {"hostname": "db.example.com", "service": "tcp://localhost:5432"},
                {"hostname": "vnc.example.com", "service": "vnc://localhost:5900"},
            ],
        )
        assert [c.port for c in configs] == [50022, 50032, 50089]

    def test_no_ingress(self):
        summary = TunnelSummary(id="tun-1", name="home")
        assert build_configs(summary, None) == []

    def test_pick_host_port_empty(self):
        assert pick_host_port(None) is None
        assert pick_host_port([]) is None

    def test_with_configs(self):
        summary = TunnelSummary(id="tun-1", name="home")
        configs = [ConfigInfo(service="ssh://a:22"), ConfigInfo(service="tcp://b:1")]

        updated = with_configs(summary, configs)

        assert updated.services == ["ssh://a:22", "tcp://b:1"]
        assert updated.service == "ssh://a:22"
        assert summary.configs is None


class TestFilterAndSort:
    def test_online_first_and_stable(self):
        summaries = [
            TunnelSummary(id="1", name="a", status="down"),
            TunnelSummary(id="2", name="b", status="healthy"),
            TunnelSummary(id="3", name="c"),
            TunnelSummary(id="4", name="d", status="Online"),
        ]
        result = filter_and_sort(summaries, ViewOptions())
        assert [s.id for s in result] == ["2", "4", "1", "3"]

    def test_hide_offline(self):
        summaries = [
            TunnelSummary(id="1", name="a", status="offline"),
            TunnelSummary(id="2", name="b", status="down"),
            TunnelSummary(id="3", name="c", status="inactive"),
        ]
        result = filter_and_sort(summaries, ViewOptions(hide_offline=True))
        assert [s.id for s in result] == ["3"]

    def test_hide_http_and_connect_target(self):
        summary = TunnelSummary(
            id="1",
            name="a",
            configs=[
                ConfigInfo(service="https://app.internal"),
                ConfigInfo(service="ssh://localhost:22"),
            ],
        )

        shown = filter_and_sort([summary], ViewOptions(hide_http=True))[0]

        assert shown.display_configs == [ConfigInfo(service="ssh://localhost:22")]
        assert shown.hidden_http_count == 1
        assert shown.connect_service == "ssh://localhost:22"
        assert shown.connect_host == "localhost:22"

    def test_single_service_becomes_config(self):
        summary = TunnelSummary(id="1", name="a", service="tcp://db:5432")
        shown = filter_and_sort([summary], ViewOptions())[0]
        assert shown.configs == [ConfigInfo(service="tcp://db:5432")]
        assert shown.connect_host == "db:5432"

    def test_hide_ip(self):
        summary = TunnelSummary(id="1", name="a", connection_ip="203.0.113.7")
        assert filter_and_sort([summary], ViewOptions(hide_ip=True))[0].connection_ip is None
        assert (
            filter_and_sort([summary], ViewOptions())[0].connection_ip == "203.0.113.7"
        )


class TestResolveConnectTarget:
    def test_uses_config_values(self):
        summary = TunnelSummary(id="tun-1", name="home", port=50000)
        config = ConfigInfo(
            service="ssh://localhost:22", proto="ssh", host="ssh.example.com", port=50022
        )

        target = resolve_connect_target(summary, config, ViewOptions())

        assert target.hostname == "ssh.example.com"
        assert target.local_port == 50022
        assert target.protocol == "ssh"

    def test_falls_back_to_summary_and_defaults(self):
        summary = TunnelSummary(id="tun-1", name="home")
        config = ConfigInfo(service="tcp://db.internal:5432")

        target = resolve_connect_target(summary, config, ViewOptions(port_start=51000))

        assert target.hostname == "db.internal:5432"
        assert target.local_port == 51000
        assert target.protocol == "tcp"

    def test_hidden_http_config(self):
        summary = TunnelSummary(id="tun-1", name="home")
        config = ConfigInfo(service="https://app.internal")

        with pytest.raises(ValueError) as exc_info:
            resolve_connect_target(summary, config, ViewOptions(hide_http=True))
        assert str(exc_info.value) == HIDDEN_HTTP_MESSAGE

    def test_invalid_port(self):
        summary = TunnelSummary(id="tun-1", name="home", port=70000)
        config = ConfigInfo(service="ssh://localhost:22")

        with pytest.raises(ValueError, match="Local port"):
            resolve_connect_target(summary, config, ViewOptions())

    def test_view_options_port_bounds(self):
        with pytest.raises(ValueError):
            ViewOptions(port_start=80)

import pytest

from realmrelay.dns_conf import (
    DnsConf,
    DnsMode,
    DnsProtocol,
    NameServerConfig,
    ResolverOpts,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("ipv4_only", DnsMode.IPV4_ONLY),
        ("IPV6_ONLY", DnsMode.IPV6_ONLY),
        ("ipv4_then_ipv6", DnsMode.IPV4_THEN_IPV6),
        ("Ipv6_Then_Ipv4", DnsMode.IPV6_THEN_IPV4),
        ("nonsense", DnsMode.IPV4_AND_IPV6),
    ],
)
def test_dns_mode_parse(text, expected):
    assert DnsMode.parse(text) is expected


def test_dns_mode_str_round_trips():
    for mode in DnsMode:
        assert DnsMode.parse(str(mode)) is mode


@pytest.mark.parametrize(
    "text, expected",
    [
        ("tcp", DnsProtocol.TCP),
        ("UDP", DnsProtocol.UDP),
        ("both", DnsProtocol.TCP_AND_UDP),
    ],
)
def test_dns_protocol_parse(text, expected):
    assert DnsProtocol.parse(text) is expected


def test_dns_protocol_str_and_protocols():
    assert str(DnsProtocol.TCP_AND_UDP) == "tcp+udp"
    assert DnsProtocol.TCP.protocols() == ["tcp"]
    assert DnsProtocol.TCP_AND_UDP.protocols() == ["tcp", "udp"]


def test_display_defaults():
    assert str(DnsConf()) == (
        "mode=ipv4_and_ipv6, protocol=tcp+udp, "
        "min-ttl=0, max-ttl=86400, cache-size=32, servers=system"
    )


def test_display_servers_joined():
    conf = DnsConf(nameservers=["1.1.1.1:53", "8.8.8.8:53"])
    assert str(conf).endswith("servers=1.1.1.1:53, 8.8.8.8:53")


def test_build_empty_gives_nothing():
    assert DnsConf().build() == (None, None)


def test_build_opts_only():
    conf, opts = DnsConf(min_ttl=10, mode=DnsMode.IPV6_ONLY).build()
    assert conf is None
    assert opts.positive_min_ttl == 10
    assert opts.positive_max_ttl is None
    assert opts.ip_strategy is DnsMode.IPV6_ONLY
    assert opts.cache_size == ResolverOpts().cache_size


def test_build_unset_mode_uses_resolver_default():
    _, opts = DnsConf(cache_size=64).build()
    assert opts.ip_strategy is ResolverOpts().ip_strategy
    assert opts.cache_size == 64


def test_build_nameservers_with_single_protocol():
    conf, opts = DnsConf(protocol=DnsProtocol.UDP, nameservers=["127.0.0.1:53"]).build()
    assert opts is None
    assert conf.name_servers == [NameServerConfig(("127.0.0.1", 53), "udp")]


def test_build_nameservers_with_both_protocols():
    conf, _ = DnsConf(nameservers=["127.0.0.1:53", "[::1]:5353"]).build()
    assert [(ns.socket_addr, ns.protocol) for ns in conf.name_servers] == [
        (("127.0.0.1", 53), "tcp"),
        (("127.0.0.1", 53), "udp"),
        (("::1", 5353), "tcp"),
        (("::1", 5353), "udp"),
    ]


def test_build_system_servers_use_requested_protocol():
    conf, _ = DnsConf(protocol=DnsProtocol.TCP).build()
    assert all(ns.protocol == "tcp" for ns in conf.name_servers)


def test_build_bad_nameserver_raises():
    with pytest.raises(ValueError):
        DnsConf(nameservers=["no-port-here"]).build()


def test_is_empty_ignores_protocol_and_servers():
    assert DnsConf(protocol=DnsProtocol.TCP, nameservers=["1.1.1.1:53"]).is_empty()
    assert not DnsConf(max_ttl=5).is_empty()


def test_rst_field_overrides_set_fields():
    conf = DnsConf(mode=DnsMode.IPV4_ONLY, min_ttl=1)
    conf.rst_field(DnsConf(mode=DnsMode.IPV6_ONLY, cache_size=8))
    assert conf == DnsConf(mode=DnsMode.IPV6_ONLY, min_ttl=1, cache_size=8)


def test_take_field_keeps_own_values():
    conf = DnsConf(mode=DnsMode.IPV4_ONLY)
    conf.take_field(DnsConf(mode=DnsMode.IPV6_ONLY, max_ttl=9))
    assert conf == DnsConf(mode=DnsMode.IPV4_ONLY, max_ttl=9)


def test_from_cmd_args():
    conf = DnsConf.from_cmd_args(
        {
            "dns_mode": "ipv6_only",
            "dns_min_ttl": "10",
            "dns_max_ttl": "abc",
            "dns_cache_size": "64",
            "dns_protocol": "udp",
            "dns_servers": "1.1.1.1:53,8.8.8.8:53",
        }
    )
    assert conf == DnsConf(
        mode=DnsMode.IPV6_ONLY,
        min_ttl=10,
        max_ttl=None,
        cache_size=64,
        protocol=DnsProtocol.UDP,
        nameservers=["1.1.1.1:53", "8.8.8.8:53"],
    )


def test_from_cmd_args_empty():
    assert DnsConf.from_cmd_args({}) == DnsConf()


def test_dict_round_trip():
    conf = DnsConf(
        mode=DnsMode.IPV4_THEN_IPV6,
        max_ttl=300,
        protocol=DnsProtocol.TCP_AND_UDP,
        nameservers=["9.9.9.9:53"],
    )
    data = conf.to_dict()
    assert data["protocol"] == "tcp_and_udp"
    assert "min_ttl" not in data
    assert DnsConf.from_dict(data) == conf


def test_from_dict_rejects_unknown_mode():
    with pytest.raises(ValueError):
        DnsConf.from_dict({"mode": "ipv5"})


def test_from_dict_rejects_negative_ttl():
    with pytest.raises(ValueError):
        DnsConf.from_dict({"min_ttl": -1})
import pytest

from realmrelay.balancer import Strategy
from realmrelay.endpoint_conf import (
    DomainName,
    EndpointConf,
    parse_remote,
)
from realmrelay.net_conf import NetConf


@pytest.mark.parametrize(
    "remote, expected",
    [
        ("1.2.3.4:80", ("1.2.3.4", 80)),
        ("[::1]:443", ("::1", 443)),
        ("example.com:443", DomainName("example.com", 443)),
    ],
)
def test_parse_remote(remote, expected):
    assert parse_remote(remote) == expected


@pytest.mark.parametrize("remote", ["nohost", "example.com:99999", "example.com:http"])
def test_parse_remote_errors(remote):
    with pytest.raises(ValueError):
        parse_remote(remote)


def test_domain_name_str():
    assert str(DomainName("example.com", 8080)) == "example.com:8080"


def test_build_local_literal():
    assert EndpointConf(listen="127.0.0.1:8080", remote="x:1").build_local() == (
        "127.0.0.1",
        8080,
    )


def test_build_local_invalid():
    with pytest.raises(ValueError):
        EndpointConf(listen="no-port", remote="x:1").build_local()


@pytest.mark.parametrize(
    "through, expected",
    [
        (None, None),
        ("127.0.0.1", ("127.0.0.1", 0)),
        ("[::1]", ("::1", 0)),
        ("1.1.1.1:1234", ("1.1.1.1", 1234)),
        ("not an address", None),
    ],
)
def test_build_send_through(through, expected):
    conf = EndpointConf(listen="127.0.0.1:1", remote="x:1", through=through)
    assert conf.build_send_through() == expected


def test_build_balancer_default_and_parsed():
    plain = EndpointConf(listen="127.0.0.1:1", remote="x:1")
    assert plain.build_balancer().strategy() is Strategy.OFF
    balanced = EndpointConf(listen="127.0.0.1:1", remote="x:1", balance="roundrobin: 1, 2")
    balancer = balanced.build_balancer()
    assert balancer.strategy() is Strategy.ROUNDROBIN
    assert balancer.total() == 2


def test_build_full_endpoint():
    conf = EndpointConf(
        listen="127.0.0.1:5000",
        remote="example.com:443",
        extra_remotes=["10.0.0.2:443"],
        balance="iphash: 1, 1",
        through="127.0.0.1",
        interface="eth0",
        listen_interface="lo",
        network=NetConf(use_udp=True, tcp_timeout=9),
    )
    info = conf.build()
    assert info.use_udp is True
    assert info.no_tcp is False
    ep = info.endpoint
    assert ep.laddr == ("127.0.0.1", 5000)
    assert ep.raddr == DomainName("example.com", 443)
    assert ep.extra_raddrs == [("10.0.0.2", 443)]
    assert ep.conn_opts.connect_timeout == 9
    assert ep.conn_opts.bind_address == ("127.0.0.1", 0)
    assert ep.conn_opts.bind_interface == "eth0"
    assert ep.bind_opts.bind_interface == "lo"
    assert ep.conn_opts.balancer.strategy() is Strategy.IPHASH
    assert "example.com:443" in str(ep)


def test_is_empty_is_false():
    assert EndpointConf(listen="a:1", remote="b:2").is_empty() is False


def test_from_cmd_args():
    conf = EndpointConf.from_cmd_args(
        {"local": "0.0.0.0:80", "remote": "example.com:80", "interface": "eth1"}
    )
    assert conf.listen == "0.0.0.0:80"
    assert conf.remote == "example.com:80"
    assert conf.interface == "eth1"
    assert conf.through is None
    assert conf.network.is_empty()
    assert conf.extra_remotes == []


def test_from_cmd_args_requires_both():
    with pytest.raises(ValueError):
        EndpointConf.from_cmd_args({"local": "0.0.0.0:80"})


def test_dict_round_trip():
    conf = EndpointConf(
        listen="0.0.0.0:80",
        remote="example.com:80",
        extra_remotes=["example.com:81"],
        balance="roundrobin: 2, 1",
        network=NetConf(no_tcp=True),
    )
    data = conf.to_dict()
    assert data["network"] == {"no_tcp": True}
    assert EndpointConf.from_dict(data) == conf


def test_to_dict_skips_empty_fields():
    data = EndpointConf(listen="0.0.0.0:80", remote="example.com:80").to_dict()
    assert data == {"listen": "0.0.0.0:80", "remote": "example.com:80"}


def test_from_dict_requires_listen():
    with pytest.raises(ValueError):
        EndpointConf.from_dict({"remote": "example.com:80"})
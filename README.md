# realmrelay

Configuration handling, load balancing and a command-line front end for a
TCP/UDP relay. It reads relay rules ("endpoints") from TOML or JSON files, from
a directory of such files, from the older legacy JSON format, or from the
command line. It merges global and per-endpoint options and builds ready-to-use
endpoint descriptions. Traffic to several remotes can be spread with an
`iphash` or `roundrobin` balancer.

## Installation

```
pip install .
```

## Command line

The `realm` command loads the configuration and sets up logging. It builds
every endpoint and prints one `inited: <listen> -> <remotes>` line for each.

Check one endpoint given on the command line:

```
realm -l 0.0.0.0:5000 -r example.com:443
```

Load a configuration file, or every `.toml` / `.json` file below a directory.
Hidden files and directories are skipped:

```
realm -c config.toml
```

Turn a legacy configuration into the current format (`-t toml` or `-t json`;
without `-o` the result is printed):

```
realm convert legacy.json -t toml -o config.toml
```

Other options:

- `-h`: show help.
- `-v`: print the version and the enabled features, e.g. `Realm 2.9.2 [proxy][balance]`.
- `-d`: detach into the background on POSIX systems.
- `-n`: set the open-file limit. Without it the soft limit is raised to the hard limit. The resulting limits are printed.
- `-u`, `-t`, `-m`, `-6`: enable UDP, disable TCP, enable MPTCP, and force IPv6-only listening.
- `--log-*`, `--dns-*`, `--send-proxy*`, `--accept-proxy*`, `--tcp-*` and `--udp-timeout`: override the log, DNS, PROXY protocol and timeout settings.

Options given on the command line override those in a file. If the
`REALM_CONF` environment variable holds a valid configuration string, it is
used instead of the command line.

## Configuration

```toml
[log]
level = "warn"
output = "stdout"

[dns]
mode = "ipv4_then_ipv6"
protocol = "tcp_and_udp"

[network]
use_udp = true
tcp_timeout = 5

[[endpoints]]
listen = "0.0.0.0:5000"
remote = "example.com:443"
extra_remotes = ["example.com:8443"]
balance = "roundrobin: 2, 1"
```

Options under the top-level `[network]` table apply to every endpoint that
leaves them unset (`FullConf.apply_global_opts`). When a directory is loaded,
earlier files win for the global sections and endpoints are concatenated.

## Library use

```python
from realmrelay.conf import FullConf
from realmrelay.balancer import Balancer

conf = FullConf.from_conf_file("config.toml")
conf.apply_global_opts()
infos = [ep.build() for ep in conf.endpoints]

balancer = Balancer.parse_from_str("iphash: 1, 2, 3")
peer = balancer.next("192.0.2.1")
```

Modules:

- `realmrelay.conf`: `FullConf` and `CmdOverride`.
- `realmrelay.endpoint_conf`, `realmrelay.net_conf`, `realmrelay.dns_conf` and `realmrelay.log_conf`: the individual sections and what they build.
- `realmrelay.legacy`: the legacy format.
- `realmrelay.balancer`, `realmrelay.ip_hash` and `realmrelay.round_robin`: peer selection.
- `realmrelay.syscall`: daemonizing, open-file limits and non-blocking socket creation.

## What it does not do

The package does not forward any traffic. `realm` stops after building the
endpoints; it starts no TCP or UDP relay loop. The DNS settings are turned into
a `ResolverConfig`/`ResolverOpts` description, but no resolver is installed.
The `--listen-transport`/`--remote-transport` settings are stored but not
acted on. `--pre-conn-hook` is accepted and ignored. `--pipe-page` only prints
the computed capacity.
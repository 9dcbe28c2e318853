# xraykit

Small, dependency-free building blocks for applications that report traces
to a tracing daemon.

## Modules

- `xraykit.header`: parse and render the `X-Amzn-Trace-Id` header value.
  `from_string(value)` returns a `Header` with `trace_id`, `parent_id`,
  `sampling_decision` (a `SamplingDecision`: `SAMPLED`, `NOT_SAMPLED`,
  `REQUESTED` or `UNKNOWN`) and `additional_data`. `Self=` parts are dropped,
  and parts without `=` are ignored. `str(header)` renders it back as
  `Root=...;Parent=...;Sampled=...;key=value`.
- `xraykit.pattern`: `wildcard_match(pattern, text, case_insensitive)` and
  `wildcard_match_case_insensitive(pattern, text)`. `*` matches any run of
  characters, `?` exactly one. An empty pattern matches only empty text.
- `xraykit.daemon_config`: work out where the daemon listens.
  `get_daemon_endpoints()` reads `AWS_XRAY_DAEMON_ADDRESS` and falls back to
  `get_default_daemon_endpoints()` (`127.0.0.1:2000` for UDP and TCP).
  `get_daemon_endpoints_from_string(address)` accepts `host:port` or
  `tcp:host:port udp:host:port` in either order; the environment variable
  takes precedence over the argument, and `None` is returned when neither
  gives an address. `get_daemon_endpoints_from_env()` reads only the
  environment variable. Host names are resolved with `resolve_endpoint`,
  preferring IPv4. The result is a `DaemonEndpoints` with `udp_addr` and
  `tcp_addr`, each an `Endpoint(host, port)`. Bad or unresolvable addresses
  raise `DaemonConfigError`, a `ValueError`.
- `xraykit.logger`: the package's internal log calls (`debug`, `debugf`,
  `debug_deferred`, `info`, `infof`, `warn`, `warnf`, `error`, `errorf`).
  Messages are formatted only when a handler emits them. By default they go
  to standard output at debug level as `<time> [LEVEL] message`;
  `set_logger(logger)` routes them to any object with a `log(level, msg)`
  method, such as a `logging.Logger`, and `get_logger()` returns the current
  one.
- `xraykit.plugins`: dataclasses `EC2Metadata`, `ECSMetadata`,
  `BeanstalkMetadata` (with `from_dict`) and `PluginMetadata` (with
  `to_dict`, keyed by `ec2`, `elastic_beanstalk` and `ecs`), plus the shared
  record `INSTANCE_PLUGIN_METADATA`.
- `xraykit.aws_plugins`: fill a `PluginMetadata` about the host.
  `add_beanstalk_metadata` reads the Elastic Beanstalk configuration file,
  `add_ec2_metadata` queries the instance metadata service (`get_token`,
  then `get_metadata`, falling back to no token), and `add_ecs_metadata`
  records the host name. Each sets `origin` on success and logs failures
  without raising. `init_beanstalk`, `init_ec2` and `init_ecs` apply them to
  `INSTANCE_PLUGIN_METADATA` when that part is still empty.

## Example

```python
from xraykit.header import from_string, SamplingDecision
from xraykit.pattern import wildcard_match_case_insensitive
from xraykit.daemon_config import get_daemon_endpoints_from_string

h = from_string("Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1")
assert h.sampling_decision is SamplingDecision.SAMPLED
print(str(h))

assert wildcard_match_case_insensitive("*/foo", "/bar/FOO")

endpoints = get_daemon_endpoints_from_string("tcp:127.0.0.1:2000 udp:127.0.0.1:2001")
print(endpoints.udp_addr, endpoints.tcp_addr)
```

## What it does not do

This package does not record segments, send anything to the daemon, apply
sampling rules or instrument HTTP clients, servers or SDK calls. It has no
command-line tool; it only provides the pieces listed above.

## Running the tests

```
pip install -e .[test]
pytest
```
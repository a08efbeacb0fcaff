"""Configuration for the external load balancer placed in front of control planes."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["IMAGE", "CONFIG_PATH", "ConfigData", "render_config"]

IMAGE = "kindest/haproxy:v20200708-548e36db"
"""The load balancer image:tag."""

CONFIG_PATH = "/usr/local/etc/haproxy/haproxy.cfg"
"""Path to the config file inside the image."""

_HEADER = """\
# generated by kind
global
  log /dev/log local0
  log /dev/log local1 notice
  daemon

resolvers docker
  nameserver dns 127.0.0.11:53

defaults
  log global
  mode tcp
  option dontlognull
  # tune these as needed
  timeout connect 5000
  timeout client 50000
  timeout server 50000
  # allow to boot despite dns don't resolve backends
  default-server init-addr none

frontend control-plane
"""

_BACKEND_HEADER = """\
  default_backend kube-apiservers

backend kube-apiservers
  option httpchk GET /healthz
  # backend certificates are not verified
"""


@dataclass
class ConfigData:
    """Values supplied to the load balancer config."""

    control_plane_port: int
    backend_servers: dict[str, str] = field(default_factory=dict)
    ipv6: bool = False


def render_config(data: ConfigData) -> str:
    """Render the haproxy configuration for data.

    Backend servers are written in order of their names.
    """
    port = data.control_plane_port
    family = "ipv6" if data.ipv6 else "ipv4"
    ipv6_bind = f"bind :::{port};" if data.ipv6 else ""
    servers = "".join(
        f"\n  server {name} {address} check check-ssl verify none"
        f" resolvers docker resolve-prefer {family}"
        for name, address in sorted(data.backend_servers.items())
    )
    return (
        _HEADER
        + f"  bind *:{port}\n  {ipv6_bind}\n"
        + _BACKEND_HEADER
        + "  "
        + servers
        + "\n"
    )
from kindconf.loadbalancer import ConfigData, render_config


def _server_lines(text):
    return [line for line in text.splitlines() if line.startswith("  server ")]


def test_header_and_trailing_newline():
    text = render_config(ConfigData(control_plane_port=6443))
    assert text.startswith("# generated by kind\nglobal\n")
    assert text.endswith("\n")
    assert "frontend control-plane\n  bind *:6443\n" in text


def test_ipv4_has_no_ipv6_bind():
    text = render_config(
        ConfigData(control_plane_port=6443, backend_servers={"cp1": "cp1:6443"})
    )
    assert "bind :::" not in text
    assert _server_lines(text) == [
        "  server cp1 cp1:6443 check check-ssl verify none resolvers docker resolve-prefer ipv4"
    ]


def test_ipv6_binds_both_and_prefers_ipv6():
    text = render_config(
        ConfigData(
            control_plane_port=6443,
            backend_servers={"cp1": "cp1:6443"},
            ipv6=True,
        )
    )
    assert "  bind *:6443\n  bind :::6443;\n  default_backend kube-apiservers\n" in text
    assert all(line.endswith("resolve-prefer ipv6") for line in _server_lines(text))


def test_servers_sorted_by_name():
    servers = {"zeta": "z:6443", "alpha": "a:6443", "mid": "m:6443"}
    text = render_config(ConfigData(control_plane_port=6443, backend_servers=servers))
    names = [line.split()[1] for line in _server_lines(text)]
    assert names == sorted(servers)
    assert len(_server_lines(text)) == len(servers)


def test_no_servers_renders_no_server_lines():
    text = render_config(ConfigData(control_plane_port=7000))
    assert _server_lines(text) == []
    assert "backend kube-apiservers\n  option httpchk GET /healthz\n" in text


def test_port_is_used_in_binds():
    text = render_config(ConfigData(control_plane_port=12345, ipv6=True))
    assert "bind *:12345" in text
    assert "bind :::12345;" in text
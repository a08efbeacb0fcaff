# kindconf

Helpers for the configuration files around a local Kubernetes cluster.

- **kubeconfig handling**
  - `kindconf.kubeconfig`: the `Config` data model, `decode`, `encode` and `read`.
  - `kind_from_raw_kubeadm` turns a kubeadm `admin.conf` into a config whose
    cluster, user and context are all named `kind-<cluster>`.
  - `kindconf.kubeconfig_paths`: picks the kubeconfig file the way kubectl does
    (an explicit path, then `$KUBECONFIG`, then `$HOME/.kube/config`). It also
    locks a file while it is changed.
  - `kindconf.kubeconfig_store`: `write`, `merge`, `write_merged`, `remove` and
    `remove_kind`.
- **patching**
  - `kindconf.jsonpatch`: JSON merge patches (`merge_patch`) and RFC 6902
    patches (`decode_patch`, `JsonPatch.apply`) on plain Python data.
  - `kindconf.patch`: `kube_yaml` patches a stream of Kubernetes YAML documents.
    It matches documents to patches on `kind` and `apiVersion`.
  - `kindconf.toml_patch`: `patch_toml` does the same for a TOML document, such
    as a containerd config.
- **load balancer config** (`kindconf.loadbalancer`): `render_config` writes an
  HAProxy configuration for a set of control-plane backends.
- **log collection** (`kindconf.logs`): `untar` unpacks a tar stream into a
  directory.

## Installation

```
pip install kindconf
```

Python 3.11 or later is required. The only dependency is PyYAML.

## Usage

### Merging a cluster into your kubeconfig

```python
from kindconf.kubeconfig import kind_from_raw_kubeadm
from kindconf.kubeconfig_store import write_merged, remove_kind

with open("admin.conf") as f:
    cfg = kind_from_raw_kubeadm(f.read(), "dev", "https://127.0.0.1:6443")

write_merged(cfg, "")   # "" means: follow $KUBECONFIG / $HOME/.kube/config
remove_kind("dev", "")  # later, take the entries out again
```

`kind_from_raw_kubeadm` raises `KubeconfigError` unless the input holds exactly
one cluster, one user and one context.

`write_merged` does three things:

- It adds the entries to the target file, or replaces the entries of the same name.
- It sets `current-context`.
- It creates missing parent directories and writes the file with mode `0600`.

While a file is being changed, a `<file>.lock` file sits beside it. If that lock
file already exists, the call fails with `KubeconfigError`.

`remove_kind` removes `kind-<name>` entries from every file that kubectl would
consider. It clears `current-context` if that context pointed at the cluster. It
rewrites only the files it changed.

`encode` writes keys in sorted order. An empty config encodes to an empty string.

### Patching Kubernetes YAML

```python
from kindconf.patch import kube_yaml, PatchJSON6902

patched = kube_yaml(
    documents,
    ["kind: ClusterConfiguration\nnetworking:\n  podSubnet: 10.0.0.0/16\n"],
    [PatchJSON6902(group="", version="", kind="ClusterConfiguration",
                   patch='[{"op": "remove", "path": "/apiServer"}]')],
)
```

- The input is split into documents on lines starting with `---`.
- A patch applies to a document when its `kind` matches. Its `apiVersion` is
  only compared when the patch sets one.
- Merge patches are applied first, then JSON 6902 patches.
- The documents are written back out joined by `---`.
- Failures raise `PatchError`.

### Patching TOML

```python
from kindconf.toml_patch import patch_toml

out = patch_toml(
    'disabled_plugins = ["restart"]\n',
    ["disabled_plugins = []"],
    ['[{"op": "remove", "path": "/disabled_plugins"}]'],
)
```

TOML merge patches are applied first, then JSON 6902 patches.

- An empty array in a merge patch removes the key.
- The output has sorted keys, and nested tables are indented.
- `toml_to_data` and `dumps_toml` are available on their own.

### Load balancer configuration

```python
from kindconf.loadbalancer import ConfigData, render_config, IMAGE, CONFIG_PATH

print(render_config(ConfigData(
    control_plane_port=6443,
    backend_servers={"cp1": "cp1:6443", "cp2": "cp2:6443"},
)))
```

Backend servers are written in order of their names. With `ipv6=True`, the
frontend also binds on `:::<port>` and name resolution prefers IPv6.

### Unpacking logs

```python
from kindconf.logs import untar

with open("logs.tar", "rb") as stream:
    untar(stream, "out/")
```

Regular files and directories are written. Other entry types are logged as
warnings and skipped.

## What this package does not do

It only works with files and streams you give it. It does not do any of the
following:

- create, start or delete clusters;
- talk to a container runtime or to cluster nodes;
- fetch `admin.conf` or logs from a node;
- provide a command-line program.

## Running the tests

```
pip install -e ".[test]"
pytest
```
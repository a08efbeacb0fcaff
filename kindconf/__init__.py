"""Kubeconfig merging and removal, YAML and TOML patching, HAProxy config and log unpacking."""

__version__ = "0.1.0"
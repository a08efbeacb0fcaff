[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kindconf"
version = "0.1.0"
description = "Kubeconfig merging and removal, Kubernetes YAML and TOML patching, HAProxy config rendering and log unpacking for local clusters"
requires-python = ">=3.11"
dependencies = [
    "pyyaml",
]
keywords = ["kubernetes", "kubeconfig", "json-patch", "merge-patch", "toml", "haproxy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kindconf"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

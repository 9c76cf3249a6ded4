[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "cgroupkit"
version = "0.1.0"
description = "Helpers for reading and writing Linux cgroup v2 control files, PSI data and plugin arguments"
requires-python = ">=3.10"
dependencies = []
keywords = ["cgroup", "cgroup2", "psi", "pressure", "memory", "oom", "linux"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["cgroupkit*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

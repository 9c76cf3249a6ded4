"""Helpers for cgroup v2 control files, PSI data, test fixtures and plugin arguments."""

__version__ = "0.1.0"
__all__ = ["argparser", "cgroupfs", "errors", "fixture", "fs", "scopeguard", "util"]
"""
gobin - Cross-compile Go binaries for every platform and run the right one.

This package builds a Go program for the whole GOOS/GOARCH matrix and
supervises execution of the prebuilt binary matching the current host.
"""

__version__ = "0.1.0"

"""dockerstep - Docker-aware build steps.

This package provides a base build step that configures a Docker client
(daemon URI, TLS certificates, registry authentication from a server
credential store) before running step-specific work with it.
"""

__version__ = "0.1.0"

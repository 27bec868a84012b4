"""CLI command modules.

Commands:
- setup: Local cluster from scratch, with port-forwards
- deploy: Install or upgrade on an existing cluster
- cleanup: Remove the deployment
- status: Show what is deployed
"""

from .cleanup import cleanup
from .deploy import deploy
from .setup import setup
from .status import status

__all__ = ["setup", "deploy", "cleanup", "status"]

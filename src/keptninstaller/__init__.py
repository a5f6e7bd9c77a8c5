"""
keptn-installer - bootstrap keptn onto a GKE cluster and configure the CLI
"""

__version__ = "0.2.0"

from .core import KeptnInstaller
from .errors import InstallerError

__all__ = ["KeptnInstaller", "InstallerError"]

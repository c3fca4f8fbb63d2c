"""Business logic services for OpenLauncher."""

from .build_catalog import BuildCatalog
from .install_service import InstallPhase, InstallService

__all__ = ['BuildCatalog', 'InstallPhase', 'InstallService']

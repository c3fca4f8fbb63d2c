from .install_registry import InstallRegistry

__all__ = ['InstallRegistry']

# OpenLauncher package
# Build resolution (catalog, platform matching, ranking) and per-game install orchestration.

__version__ = "0.1.0"

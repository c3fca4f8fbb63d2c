# Release sources package
from .base import ReleaseSource
from .github import GitHubReleaseSource

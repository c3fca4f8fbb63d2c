"""Games the launcher knows how to manage."""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .platform import OsFamily


@dataclass(frozen=True)
class Game:
    """A title whose builds are published on a release host"""
    id: str
    name: str
    repository: str                                   # "owner/name"
    executables: Dict[OsFamily, Tuple[str, ...]] = field(default_factory=dict, hash=False)
    version_args: Optional[Tuple[str, ...]] = None    # Makes the executable print its version

    @property
    def owner(self) -> str:
        return self.repository.split('/', 1)[0]

    @property
    def repo_name(self) -> str:
        return self.repository.split('/', 1)[-1]

    def executable_names(self, os_family: Optional[OsFamily]) -> Tuple[str, ...]:
        """Candidate executable file names inside an installed build, best first."""
        if os_family is None:
            return ()
        return self.executables.get(os_family, ())

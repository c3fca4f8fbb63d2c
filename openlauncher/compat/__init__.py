# Compat package
from .matcher import (
    ArchMatch,
    CompatibilityPolicy,
    Match,
    PlatformMatcher,
    default_matcher,
)
from .ranker import has_applicable_asset, rank, select_best_asset

"""
plugin-updater Update Subsystem

Core Components:
- interfaces: Plugin, release and result data structures
- version: Version novelty decisions
- cache: Short-lived query cache for source APIs
- sources: Source protocol and one implementation per backend
- registry: Named sources and plugins
- files: Temporary storage, archive handling, storing and linking
- installed: Record of installed versions
- pipeline: Per-plugin update cycle and whole-run coordination
"""

from .cache import QueryCache
from .files import ContentType, TempStorage
from .installed import InstalledVersions
from .interfaces import (
    Checksum,
    PluginConfig,
    ReleaseInfo,
    RunSummary,
    UpdateResult,
    UpdateStatus,
)
from .pipeline import UpdatePipeline
from .registry import Registry
from .sources import SOURCE_FACTORIES, SourceContext, SourceType, UpdateSource
from .version import is_newer, sanitize

__all__ = [
    # Interfaces
    "Checksum",
    "PluginConfig",
    "ReleaseInfo",
    "RunSummary",
    "UpdateResult",
    "UpdateStatus",
    # Sources
    "SOURCE_FACTORIES",
    "SourceContext",
    "SourceType",
    "UpdateSource",
    # Core components
    "ContentType",
    "InstalledVersions",
    "QueryCache",
    "Registry",
    "TempStorage",
    "UpdatePipeline",
    "is_newer",
    "sanitize",
]

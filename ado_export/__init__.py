from .client import AdoClient
from .errors import AdoError, NetworkError, ApiError, AdoConnectionError, CreateError, LinkError
from .export import export_to_ado
from .exporter import HierarchyExporter
from .linker import DependencyLinker
from .schemas import AdoConfig, RemoteWorkItem, WorkItemDetails, StoryWorkItemMap, LinkFailure, ExportReport

__all__ = [
    "AdoClient",
    "AdoError",
    "NetworkError",
    "ApiError",
    "AdoConnectionError",
    "CreateError",
    "LinkError",
    "export_to_ado",
    "HierarchyExporter",
    "DependencyLinker",
    "AdoConfig",
    "RemoteWorkItem",
    "WorkItemDetails",
    "StoryWorkItemMap",
    "LinkFailure",
    "ExportReport",
]

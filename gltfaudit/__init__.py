"""gltfaudit package."""

from .api import AuditResult, audit_buffers, audit_file, pack_gltf
from .core.version import __version__

__all__ = ["AuditResult", "audit_buffers", "audit_file", "pack_gltf", "__version__"]

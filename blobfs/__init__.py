"""File-like write access to object storage.

This package provides:
- Output files that create, overwrite or exclusively create blobs
- Buffered output streams that upload blobs block by block
- Filesystem and MinIO backends, selectable by name from a config module
"""

__all__ = ["core"]

"""Object locations."""

from __future__ import annotations

from dataclasses import dataclass

from blobfs.core.storage.errors import InvalidArgumentError


@dataclass(frozen=True)
class Location:
    """Identifies a stored object by bucket and path.

    The canonical string form is ``scheme://bucket/path``.
    """

    bucket: str
    path: str
    scheme: str = "s3"

    def __post_init__(self) -> None:
        if not self.bucket:
            raise InvalidArgumentError("Location bucket is empty")
        if not self.path or self.path.endswith("/"):
            raise InvalidArgumentError(f"Location path is not a file path: '{self.path}'")
        if "/" in self.bucket:
            raise InvalidArgumentError(f"Invalid bucket name: '{self.bucket}'")

    @classmethod
    def parse(cls, uri: str) -> Location:
        """Parse a location from its canonical string form.

        Examples:
            >>> Location.parse("s3://data/raw/2024/01/quotes.parquet")
            Location(bucket='data', path='raw/2024/01/quotes.parquet', scheme='s3')
        """
        scheme, sep, rest = uri.partition("://")
        if not sep or not scheme:
            raise InvalidArgumentError(f"Location has no scheme: '{uri}'")

        bucket, _, path = rest.partition("/")
        return cls(bucket=bucket, path=path, scheme=scheme)

    def with_path(self, path: str) -> Location:
        """Return a location for another path in the same bucket."""
        return Location(bucket=self.bucket, path=path, scheme=self.scheme)

    def __str__(self) -> str:
        return f"{self.scheme}://{self.bucket}/{self.path}"

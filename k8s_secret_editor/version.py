"""k8s-secret-editor build information.

Release builds rewrite COMMIT, BUILD_DATE and BUILT_BY.
"""
from dataclasses import dataclass
from importlib import metadata

__title__ = "k8s-secret-editor"
__version__ = "0.1.0"

COMMIT = "none"
BUILD_DATE = "unknown"
BUILT_BY = "unknown"


@dataclass(frozen=True)
class BuildInfo:
    version: str = "dev"
    commit: str = "none"
    date: str = "unknown"
    built_by: str = "unknown"

    @classmethod
    def current(cls) -> "BuildInfo":
        """Build info of the running package, preferring installed metadata."""
        try:
            version = metadata.version(__title__)
        except metadata.PackageNotFoundError:
            version = __version__
        return cls(version=version, commit=COMMIT, date=BUILD_DATE, built_by=BUILT_BY)

    def describe(self) -> str:
        return (
            f"{__title__} version {self.version} "
            f"(commit: {self.commit}, built at: {self.date}, built by: {self.built_by})"
        )

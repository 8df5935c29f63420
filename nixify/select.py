"""Package selection by name patterns."""

from collections.abc import Iterable, Iterator

import pathspec

from nixify.packages import PackageDescriptor


def create_pathspec(patterns: list[str]) -> pathspec.PathSpec:
    """Create a pathspec from gitignore-style patterns."""
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def exclude_packages(
    packages: Iterable[PackageDescriptor],
    patterns: list[str],
) -> Iterator[PackageDescriptor]:
    """Drop packages whose name matches any of ``patterns``.
    
    Package names look like ``vendor/package``, so ``vendor/*`` excludes
    a whole vendor.
    """
    if not patterns:
        yield from packages
        return
    
    spec = create_pathspec(patterns)
    
    for package in packages:
        if not spec.match_file(package.name):
            yield package

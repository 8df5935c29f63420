"""Dist reference substitution for archive URLs.

Cache keys are derived from the URL the package manager would actually
download, which for VCS hosting sites embeds the locked reference. These
rules mirror how the package manager rewrites such URLs.
"""

import re
from urllib.parse import urlparse

GITHUB_HOSTS = {"github.com", "www.github.com", "api.github.com"}
BITBUCKET_HOSTS = {"bitbucket.org", "www.bitbucket.org"}
GITLAB_HOSTS = {"gitlab.com", "www.gitlab.com"}

GITHUB_LEGACY = re.compile(
    r"^https?://(?:www\.)?github\.com/([^/]+)/([^/]+)/(zip|tar)ball/(.+)$", re.I
)
GITHUB_ARCHIVE = re.compile(
    r"^https?://(?:www\.)?github\.com/([^/]+)/([^/]+)/archive/.+\.(zip|tar)(?:\.gz)?$", re.I
)
GITHUB_API = re.compile(
    r"^https?://api\.github\.com/repos/([^/]+)/([^/]+)/(zip|tar)ball(?:/.+)?$", re.I
)
BITBUCKET_GET = re.compile(
    r"^https?://(?:www\.)?bitbucket\.org/([^/]+)/([^/]+)/get/(.+)\.(zip|tar\.gz|tar\.bz2)$", re.I
)
GITLAB_ARCHIVE = re.compile(
    r"^https?://(?:www\.)?gitlab\.com/api/v[34]/projects/([^/]+)/repository/archive\.(zip|tar\.gz|tar\.bz2|tar)\?sha=.+$",
    re.I,
)
CUSTOM_GITHUB_API = re.compile(r"(/repos/[^/]+/[^/]+/(zip|tar)ball)(?:/.+)?$", re.I)
CUSTOM_GITLAB_ARCHIVE = re.compile(
    r"(/api/v[34]/projects/[^/]+/repository/archive\.(?:zip|tar\.gz|tar\.bz2|tar)\?sha=).+$", re.I
)


def update_dist_reference(
    url: str,
    reference: str,
    github_domains: list[str] | None = None,
    gitlab_domains: list[str] | None = None,
) -> str:
    """Rewrite an archive URL so it points at ``reference``.
    
    Args:
        url: Dist URL from the lockfile
        reference: Locked reference (commit or tag)
        github_domains: Extra GitHub Enterprise hosts
        gitlab_domains: Extra self-hosted GitLab hosts
    
    Returns:
        The rewritten URL, or ``url`` unchanged if no rule applies
    """
    host = (urlparse(url).hostname or "").lower()
    
    if host in GITHUB_HOSTS:
        for pattern in (GITHUB_LEGACY, GITHUB_ARCHIVE, GITHUB_API):
            match = pattern.match(url)
            if match:
                owner, repo, kind = match.group(1), match.group(2), match.group(3)
                return f"https://api.github.com/repos/{owner}/{repo}/{kind}ball/{reference}"
        return url
    
    if host in BITBUCKET_HOSTS:
        match = BITBUCKET_GET.match(url)
        if match:
            owner, repo, ext = match.group(1), match.group(2), match.group(4)
            return f"https://bitbucket.org/{owner}/{repo}/get/{reference}.{ext}"
        return url
    
    if host in GITLAB_HOSTS:
        match = GITLAB_ARCHIVE.match(url)
        if match:
            project, ext = match.group(1), match.group(2)
            return f"https://gitlab.com/api/v4/projects/{project}/repository/archive.{ext}?sha={reference}"
        return url
    
    if host in (github_domains or []):
        return CUSTOM_GITHUB_API.sub(lambda m: f"{m.group(1)}/{reference}", url)
    
    if host in (gitlab_domains or []):
        return CUSTOM_GITLAB_ARCHIVE.sub(lambda m: f"{m.group(1)}{reference}", url)
    
    return url

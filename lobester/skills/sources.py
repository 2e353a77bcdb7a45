"""Remote skill sources.

A fetcher turns a remote reference into a local directory the installer can
copy from. Only public GitHub repositories are supported.
"""

from __future__ import annotations

import re
import tarfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

import httpx

from lobester.errors import InvalidRequestError, SkillInstallError

CODELOAD_BASE = "https://codeload.github.com"

_GITHUB_REF_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)(?:#(.+))?$")


@dataclass(frozen=True)
class GitHubRef:
    owner: str
    repo: str
    revision: str = "HEAD"

    @property
    def tarball_url(self) -> str:
        return f"{CODELOAD_BASE}/{self.owner}/{self.repo}/tar.gz/{self.revision}"


def parse_github_ref(ref: str) -> GitHubRef:
    """Parse ``owner/repo`` or ``owner/repo#revision``."""
    match = _GITHUB_REF_RE.match(ref.strip())
    if not match:
        raise InvalidRequestError(
            "GitHub ref must be owner/repo or owner/repo#ref",
            code="invalid_github_ref",
        )
    return GitHubRef(owner=match.group(1), repo=match.group(2), revision=match.group(3) or "HEAD")


def _extract_stripped(archive_path: Path, destination: Path) -> None:
    """Extract a tarball, dropping its top-level directory."""
    root = destination.resolve()
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar.getmembers():
            parts = PurePosixPath(member.name).parts[1:]
            if not parts or ".." in parts or member.issym() or member.islnk():
                continue
            if not (member.isfile() or member.isdir()):
                continue
            target = root.joinpath(*parts).resolve()
            if root not in target.parents and target != root:
                continue
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            extracted = tar.extractfile(member)
            if extracted is None:
                continue
            with extracted, open(target, "wb") as fh:
                fh.write(extracted.read())


class GitHubArchiveFetcher:
    """Download a repository tarball from GitHub and unpack it."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    def fetch(self, ref: str, workdir: Path) -> Path:
        """Fetch *ref* into *workdir* and return the extracted directory."""
        parsed = parse_github_ref(ref)
        archive_path = workdir / "repo.tar.gz"
        extract_path = workdir / "extract"
        extract_path.mkdir(parents=True, exist_ok=True)

        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = client.get(
                    parsed.tarball_url, headers={"User-Agent": "lobester-connector"}
                )
        except httpx.RequestError as exc:
            raise SkillInstallError(f"GitHub download failed: {exc}") from exc

        if resp.status_code >= 400:
            raise SkillInstallError(
                f"GitHub download failed ({resp.status_code} {resp.reason_phrase})"
            )
        archive_path.write_bytes(resp.content)

        try:
            _extract_stripped(archive_path, extract_path)
        except tarfile.TarError as exc:
            raise SkillInstallError(f"GitHub archive could not be extracted: {exc}") from exc
        return extract_path

"""GitHub REST API client.

Lists the public repositories of the configured account and assembles a
detail view of a single repository (languages, recent commits, releases
and README).

See: https://docs.github.com/en/rest/repos/repos
"""

import asyncio
import base64
import binascii
import re
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from ptflio.core.exceptions import RequestValidationError
from ptflio.services.base import ExternalServiceClient, ServiceResult
from ptflio.services.credentials import ValidationResult, validate_credential

if TYPE_CHECKING:
    from ptflio.config import Settings

logger = structlog.get_logger(__name__)

TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")
MIN_TOKEN_LENGTH = 40
REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,100}$")

MAX_PER_PAGE = 100
DETAIL_COMMITS = 10
DETAIL_RELEASES = 5


@dataclass(frozen=True)
class GitHubConfig:
    """Account and optional token for the GitHub API."""

    username: str
    token: str | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GitHubConfig":
        token = settings.github_token.get_secret_value() if settings.github_token else None
        return cls(username=settings.github_username, token=token or None)


@dataclass(frozen=True)
class RepositoryListOptions:
    """Per-call options for ``get_repositories``."""

    per_page: int = MAX_PER_PAGE
    include_forks: bool = True


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass
class Repository:
    """Repository summary as shown in a project listing."""

    name: str
    full_name: str
    html_url: str
    description: str | None
    language: str | None
    stargazers_count: int
    forks_count: int
    created_at: str
    updated_at: str
    homepage: str | None = None
    topics: list[str] = field(default_factory=list)
    fork: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict for caching."""
        return asdict(self)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Repository":
        return cls(
            name=data["name"],
            full_name=data.get("full_name", data["name"]),
            html_url=data.get("html_url", ""),
            description=data.get("description"),
            language=data.get("language"),
            stargazers_count=data.get("stargazers_count", 0),
            forks_count=data.get("forks_count", 0),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            homepage=data.get("homepage") or None,
            topics=data.get("topics") or [],
            fork=bool(data.get("fork", False)),
        )


@dataclass
class LanguageShare:
    name: str
    bytes: int
    percentage: int


@dataclass
class RepositoryDetails:
    """Everything shown on a project page."""

    repository: Repository
    languages: list[LanguageShare] = field(default_factory=list)
    commits: list[dict[str, Any]] = field(default_factory=list)
    releases: list[dict[str, Any]] = field(default_factory=list)
    readme: str = ""
    license: str | None = None
    open_issues_count: int = 0
    default_branch: str = "main"
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["stats"] = {
            "total_languages": len(self.languages),
            "total_releases": len(self.releases),
            "total_commits": len(self.commits),
            "repository_size": self.size,
        }
        return data


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class GitHubService(ExternalServiceClient):
    """Async client for the GitHub REST API.

    Usage:
        ```python
        service = GitHubService(GitHubConfig(username="octocat"))
        result = await service.get_repositories()
        detail = await service.get_repository("hello-world")
        ```
    """

    name = "github"
    base_url = "https://api.github.com"

    def __init__(self, config: GitHubConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    def default_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def secrets(self) -> tuple[str, ...]:
        return (self.config.token,) if self.config.token else ()

    def validate_configuration(self) -> ValidationResult:
        """Username is required; a token, when set, must look like one."""
        result = validate_credential(self.config.username, "GITHUB_USERNAME")
        if not result.is_valid:
            return result

        token = self.config.token
        if token is None:
            return ValidationResult(is_valid=True)

        result = validate_credential(token, "GITHUB_TOKEN")
        if not result.is_valid:
            return result
        if not token.startswith(TOKEN_PREFIXES) or len(token) < MIN_TOKEN_LENGTH:
            return ValidationResult(
                is_valid=False,
                error="Invalid GitHub token format",
                suggestion=(
                    "GitHub tokens start with one of "
                    f"{', '.join(TOKEN_PREFIXES)} and are at least "
                    f"{MIN_TOKEN_LENGTH} characters long"
                ),
            )
        return ValidationResult(is_valid=True)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get_repositories(
        self, options: RepositoryListOptions | None = None
    ) -> ServiceResult[list[Repository]]:
        """List the account's repositories, most recently updated first."""
        return await self.fetch(options or RepositoryListOptions())

    async def get_repository(self, name: str) -> ServiceResult[RepositoryDetails]:
        """Fetch one repository with its languages, commits, releases and README.

        Only the repository itself is required; the secondary resources are
        best-effort and left empty when their request fails.
        """
        return await self._run("get_repository", lambda: self._fetch_details(name))

    async def _fetch(
        self, options: RepositoryListOptions
    ) -> tuple[list[Repository], dict[str, Any]]:
        if not 1 <= options.per_page <= MAX_PER_PAGE:
            raise RequestValidationError(
                f"per_page must be between 1 and {MAX_PER_PAGE}",
                details={"per_page": options.per_page},
            )

        data = await self._request(
            f"/users/{self.config.username}/repos",
            params={"per_page": options.per_page, "sort": "updated"},
        )

        repositories = [Repository.from_api(item) for item in data or []]
        if not options.include_forks:
            repositories = [r for r in repositories if not r.fork]
        repositories.sort(key=lambda r: r.updated_at, reverse=True)

        logger.info(
            "github_repositories_fetched",
            username=self.config.username,
            repository_count=len(repositories),
            anonymous=self.config.token is None,
        )
        return repositories, {"count": len(repositories)}

    async def _fetch_details(self, name: str) -> tuple[RepositoryDetails, dict[str, Any]]:
        if not REPO_NAME_PATTERN.match(name):
            raise RequestValidationError(
                "Invalid repository name", details={"name": name}
            )

        base_path = f"/repos/{self.config.username}/{name}"
        repo = await self._request(base_path)

        languages, commits, releases, readme = await asyncio.gather(
            self._request(f"{base_path}/languages"),
            self._request(f"{base_path}/commits", params={"per_page": DETAIL_COMMITS}),
            self._request(f"{base_path}/releases", params={"per_page": DETAIL_RELEASES}),
            self._request(f"{base_path}/readme"),
            return_exceptions=True,
        )
        for resource, outcome in (
            ("languages", languages),
            ("commits", commits),
            ("releases", releases),
            ("readme", readme),
        ):
            if isinstance(outcome, Exception):
                logger.warning(
                    "github_resource_unavailable",
                    repository=name,
                    resource=resource,
                    error=str(outcome),
                )

        details = RepositoryDetails(
            repository=Repository.from_api(repo),
            languages=language_shares(_ok(languages, {})),
            commits=[_parse_commit(c) for c in _ok(commits, [])],
            releases=[_parse_release(r) for r in _ok(releases, [])],
            readme=_decode_readme(_ok(readme, {})),
            license=(repo.get("license") or {}).get("name"),
            open_issues_count=repo.get("open_issues_count", 0),
            default_branch=repo.get("default_branch", "main"),
            size=repo.get("size", 0),
        )
        return details, {"repository": name}


def language_shares(languages: dict[str, int]) -> list[LanguageShare]:
    """Byte counts per language as rounded percentages, largest first."""
    total = sum(languages.values())
    shares = [
        LanguageShare(
            name=language,
            bytes=size,
            percentage=round(size / total * 100) if total > 0 else 0,
        )
        for language, size in languages.items()
    ]
    shares.sort(key=lambda s: s.bytes, reverse=True)
    return shares


def _ok(outcome: Any, default: Any) -> Any:
    return default if isinstance(outcome, BaseException) or outcome is None else outcome


def _parse_commit(data: dict[str, Any]) -> dict[str, Any]:
    commit = data.get("commit") or {}
    author = commit.get("author") or {}
    return {
        "sha": data.get("sha", ""),
        "message": commit.get("message", ""),
        "author": author.get("name"),
        "date": author.get("date"),
        "url": data.get("html_url", ""),
    }


def _parse_release(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "tag_name": data.get("tag_name", ""),
        "name": data.get("name"),
        "published_at": data.get("published_at"),
        "url": data.get("html_url", ""),
        "body": data.get("body") or "",
    }


def _decode_readme(data: dict[str, Any]) -> str:
    if data.get("encoding") != "base64":
        return data.get("content") or ""
    try:
        return base64.b64decode(data.get("content") or "").decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        logger.warning("github_readme_undecodable")
        return ""

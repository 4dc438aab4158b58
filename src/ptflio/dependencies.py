"""`Depends()` providers and their `Annotated` aliases.

Every dependency resolves through the ``ServiceContainer``
stored on the application state, so tests can swap any of them through
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from ptflio.config import Settings
from ptflio.container import ServiceContainer
from ptflio.services.cache import CacheManager
from ptflio.services.github import GitHubService
from ptflio.services.health import HealthAggregator
from ptflio.services.instagram import InstagramService
from ptflio.services.youtube import YouTubeService


def get_container(request: Request) -> ServiceContainer:
    """Get the service container created by the app factory."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


# ========================================
# Settings Dependencies
# ========================================
def get_settings_from_request(container: ContainerDep) -> Settings:
    """Settings the application was created with."""
    return container.settings


# ========================================
# Cache Dependencies
# ========================================
def get_cache(container: ContainerDep) -> CacheManager:
    return container.cache


# ========================================
# Service Dependencies
# ========================================
def get_youtube_service(container: ContainerDep) -> YouTubeService:
    return container.youtube


def get_github_service(container: ContainerDep) -> GitHubService:
    return container.github


def get_instagram_service(container: ContainerDep) -> InstagramService:
    return container.instagram


def get_health_aggregator(container: ContainerDep) -> HealthAggregator:
    return container.health


SettingsDep = Annotated[Settings, Depends(get_settings_from_request)]
CacheDep = Annotated[CacheManager, Depends(get_cache)]
YouTubeDep = Annotated[YouTubeService, Depends(get_youtube_service)]
GitHubDep = Annotated[GitHubService, Depends(get_github_service)]
InstagramDep = Annotated[InstagramService, Depends(get_instagram_service)]
HealthDep = Annotated[HealthAggregator, Depends(get_health_aggregator)]

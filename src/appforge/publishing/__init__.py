"""Publish backends."""

from appforge.publishing.base import PublishBackend, PublishTarget
from appforge.publishing.github import GitHubPublisher

__all__ = [
    "GitHubPublisher",
    "PublishBackend",
    "PublishTarget",
]

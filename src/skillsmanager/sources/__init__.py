"""Skill sources: local directories, GitHub repositories, and git mirrors."""

from skillsmanager.sources.base import FetchError, FetchErrorKind, SkillRepository
from skillsmanager.sources.cloned import ClonedRepoSkillRepository
from skillsmanager.sources.git import GitCLIClient, GitError, GitErrorKind
from skillsmanager.sources.github import GitHubClient, GitHubSkillRepository, parse_github_url
from skillsmanager.sources.local import LocalDirectorySkillRepository, LocalSkillRepository
from skillsmanager.sources.merged import MergedSkillRepository, merge_by_unique_key

__all__ = [
    "FetchError",
    "FetchErrorKind",
    "SkillRepository",
    "LocalSkillRepository",
    "LocalDirectorySkillRepository",
    "GitHubClient",
    "GitHubSkillRepository",
    "parse_github_url",
    "ClonedRepoSkillRepository",
    "GitCLIClient",
    "GitError",
    "GitErrorKind",
    "MergedSkillRepository",
    "merge_by_unique_key",
]

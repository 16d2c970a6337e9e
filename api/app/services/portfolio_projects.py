"""Declared portfolio projects (fixed at deploy time)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from app.models.github import Project
from app.services import portfolio_config

logger = logging.getLogger(__name__)

DEFAULT_PROJECTS: tuple[Project, ...] = (
    Project(
        repo="lou-16/krnl",
        featured=True,
        custom_description="A WIP kernel created from scratch in C.",
        tags=["Operating Systems", "Low-level", "C"],
    ),
    Project(
        repo="lou-16/cassie",
        featured=True,
        custom_description="Mirror Repo for the GitLab repository for this project.",
        tags=["C++"],
    ),
    Project(
        repo="lou-16/fsprintf",
        featured=False,
        custom_description="Freestanding printf that I wrote for my kernel. Plans to add driver support later.",
        tags=["C", "Kernel Development"],
    ),
    Project(
        repo="lou-16/prabhaavField",
        featured=True,
        custom_description="An Expo Go app implemented under PS25250 for team CogniForge's solution",
        tags=["TypeScript", "React Native", "Expo"],
    ),
)


def _dedupe(projects: list[Project]) -> list[Project]:
    seen: set[str] = set()
    ordered: list[Project] = []
    for project in projects:
        key = project.repo.lower()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(project)
    return ordered


def load_projects(path: Optional[Path] = None) -> list[Project]:
    """Return the declared projects.

    A JSON file (list of objects, or ``{"projects": [...]}``) replaces the built-in list
    when configured. An unreadable or invalid file falls back to the built-in list.
    Duplicate repo identifiers keep their first declaration.
    """
    path = path or portfolio_config.projects_file_path()
    if path is None:
        return list(DEFAULT_PROJECTS)
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        rows = payload.get("projects") if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise ValueError("projects file must contain a list")
        projects = [Project.model_validate(row) for row in rows]
    except (OSError, ValueError, ValidationError):
        logger.warning("portfolio_projects_file_invalid path=%s", path, exc_info=True)
        return list(DEFAULT_PROJECTS)
    return _dedupe(projects)

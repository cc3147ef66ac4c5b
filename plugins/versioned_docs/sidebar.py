import enum
import logging
import posixpath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from plugins.versioned_docs.exceptions import SidebarNotFoundError
from plugins.versioned_docs.repository import RepositoryAccess
from plugins.versioned_docs.tree import TreeObject, index_tree
from plugins.versioned_docs.versions import ResolvedVersion

log = logging.getLogger("mkdocs.plugins.versioned_docs")

SidebarCategories = Dict[Any, List[Any]]


class ConfigFormat(enum.Enum):
    YAML = "yaml"
    # script configs cannot be evaluated here; finding one means "no sidebar"
    SCRIPT = "script"


# Checked in order, first present wins
CONFIG_PATHS: Tuple[Tuple[str, ConfigFormat], ...] = (
    ("gatsby-config.js", ConfigFormat.SCRIPT),
    ("_config.yml", ConfigFormat.YAML),
)


def find_config(
    objects: Iterable[TreeObject], base_dir: str = ""
) -> Optional[Tuple[str, ConfigFormat]]:
    """Return the first recognised config file present in the tree."""
    paths = {obj.path for obj in objects}
    for name, config_format in CONFIG_PATHS:
        config_path = posixpath.join(base_dir, name) if base_dir else name
        if config_path in paths:
            return config_path, config_format
    return None


async def get_sidebar_categories(
    repository: RepositoryAccess,
    tag: str,
    base_dir: str = "",
    objects: Optional[Sequence[TreeObject]] = None,
) -> Optional[SidebarCategories]:
    """
    Read ``sidebar_categories`` from the config file committed at ``tag``.

    ``objects`` is the already indexed tree at ``tag``; it is listed when omitted.
    """
    if objects is None:
        tree = await repository.list_tree(tag)
        if not tree:
            return None
        objects = index_tree(tree)
    found = find_config(objects, base_dir)
    if found is None:
        log.debug(f"[versioned_docs] no config file found at {tag}")
        return None

    config_path, config_format = found
    if config_format is ConfigFormat.SCRIPT:
        log.debug(f"[versioned_docs] {config_path}@{tag} is a script config; not supported")
        return None

    text = await repository.read_file(tag, config_path)
    # YAMLError is not caught: a broken config aborts the run
    config = yaml.safe_load(text) or {}
    if not isinstance(config, dict):
        return None
    return config.get("sidebar_categories")


async def resolve_sidebar(
    repository: RepositoryAccess,
    version: ResolvedVersion,
    sidebar_categories: Optional[SidebarCategories],
    base_dir: str = "",
    objects: Optional[Sequence[TreeObject]] = None,
) -> SidebarCategories:
    """
    Sidebar for one version.

    The current version uses the sidebar given in the site config; older
    versions use the one committed alongside their docs.
    """
    if version.is_current:
        categories = sidebar_categories
    else:
        categories = await get_sidebar_categories(repository, version.tag, base_dir, objects)
    if categories is None:
        raise SidebarNotFoundError(
            f"No sidebar configuration found for this version: {version.tag}"
        )
    return categories

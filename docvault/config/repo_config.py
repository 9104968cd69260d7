"""Repository configuration (`docvault.yaml`) and root discovery."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigError
from ..ids import new_id
from ..models import CONFIG_FILE, DEFAULT_IGNORE, RepoConfig

HEADER_COMMENT = "# docvault repository configuration\n"

_KNOWN_KEYS = ("repository_id", "aliases", "ignore")


def parse_repo_config(content: str) -> RepoConfig:
    """Parse config text. Unknown keys are kept in ``extra``."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid {CONFIG_FILE}: {e}") from e
    if not isinstance(data, dict):
        return RepoConfig()

    repository_id = data.get("repository_id")
    if not isinstance(repository_id, str) or not repository_id:
        repository_id = None

    aliases = {}
    if isinstance(data.get("aliases"), dict):
        aliases = {str(k): v for k, v in data["aliases"].items() if isinstance(v, str)}

    ignore = list(DEFAULT_IGNORE)
    if isinstance(data.get("ignore"), list):
        ignore = [v for v in data["ignore"] if isinstance(v, str)]

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
    return RepoConfig(repository_id=repository_id, aliases=aliases, ignore=ignore, extra=extra)


def serialize_repo_config(config: RepoConfig) -> str:
    data: dict[str, Any] = dict(config.extra)
    if config.repository_id:
        data["repository_id"] = config.repository_id
    data["aliases"] = dict(config.aliases)
    # Only written when it differs from the default
    if set(config.ignore) != set(DEFAULT_IGNORE):
        data["ignore"] = list(config.ignore)
    return HEADER_COMMENT + yaml.safe_dump(data, sort_keys=False, allow_unicode=True, width=float("inf"))


def default_repo_config_content() -> str:
    return serialize_repo_config(RepoConfig(repository_id=new_id()))


def find_repository_root(start: Path) -> Path:
    """Walk upward from ``start`` to the directory holding `docvault.yaml`."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / CONFIG_FILE).is_file():
            return candidate
    raise ConfigError(f"repository is not initialized (missing {CONFIG_FILE}). Run `docvault init`.")

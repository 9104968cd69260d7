"""Opening and initializing repositories.

A ``Manager`` bundles everything an operation needs for one repository root:
its config, discovered collection schemas, the cached ``Repository``, and
the services built on top of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config.aliases import validate_aliases
from .config.repo_config import (
    default_repo_config_content,
    find_repository_root,
    parse_repo_config,
    serialize_repo_config,
)
from .config.schema import discover_collections
from .errors import ConfigError
from .ids import new_id
from .models import CONFIG_FILE, CollectionSchema, RepoConfig
from .repository.cache import DocumentCache
from .repository.repository import Repository
from .services.documents import DocumentService
from .services.relationships import RelationshipService
from .services.search import SearchService
from .services.templates import TemplateService
from .services.validation import ValidationService
from .storage.fs import LocalFileSystem
from .storage.lock import WriteLock, create_write_lock

logger = logging.getLogger(__name__)


@dataclass
class Manager:
    root: Path
    config: RepoConfig
    schemas: dict[str, CollectionSchema]
    repository: Repository
    lock_strategy: str = "auto"
    documents: DocumentService = field(init=False)
    templates: TemplateService = field(init=False)
    relationships: RelationshipService = field(init=False)
    search: SearchService = field(init=False)
    validation: ValidationService = field(init=False)

    def __post_init__(self) -> None:
        aliases = self.config.aliases
        self.documents = DocumentService(self.schemas, aliases, self.repository)
        self.templates = TemplateService(self.schemas, aliases, self.repository)
        self.relationships = RelationshipService(self.schemas, self.repository)
        self.search = SearchService(self.repository, self.schemas)
        self.validation = ValidationService(
            self.schemas,
            aliases,
            self.repository,
            ignore=self.config.ignore,
            audit_root=self.root,
        )

    @classmethod
    def open(
        cls,
        start: Path | None = None,
        *,
        cache: DocumentCache | None = None,
        lock_strategy: str = "auto",
    ) -> "Manager":
        """Open the repository containing ``start`` (default: the working directory).

        A config without ``repository_id`` gets one assigned and written back;
        the id keys the shared document cache.

        Raises:
            ConfigError: No `docvault.yaml` above ``start``, or an alias
                shadows a collection.
            SchemaError: A collection schema is invalid.
        """
        root = find_repository_root(start or Path.cwd())
        config_path = root / CONFIG_FILE
        config = parse_repo_config(config_path.read_text(encoding="utf-8"))

        fs = LocalFileSystem(root)
        if not config.repository_id:
            with create_write_lock(root, lock_strategy):
                # Another process may have assigned one since the first read
                config = parse_repo_config(fs.read_file(CONFIG_FILE))
                if not config.repository_id:
                    config.repository_id = new_id()
                    fs.write_file(CONFIG_FILE, serialize_repo_config(config))
                    logger.info("assigned repository id %s to %s", config.repository_id, root)

        schemas = discover_collections(fs)
        validate_aliases(config.aliases, schemas.keys())

        repository = Repository(
            fs,
            cache=cache,
            identity=config.repository_id,
            schemas=schemas,
            ignore=config.ignore,
        )
        logger.debug("opened %s (%d collections)", root, len(schemas))
        return cls(
            root=root,
            config=config,
            schemas=schemas,
            repository=repository,
            lock_strategy=lock_strategy,
        )

    @staticmethod
    def init(path: Path) -> Path:
        """Create ``path`` (if needed) with a default `docvault.yaml`."""
        path = Path(path)
        config_path = path / CONFIG_FILE
        if config_path.exists():
            raise ConfigError(f"repository already initialized: {path}")
        path.mkdir(parents=True, exist_ok=True)
        config_path.write_text(default_repo_config_content(), encoding="utf-8")
        logger.info("initialized repository at %s", path)
        return path

    def write_lock(self) -> WriteLock:
        """A fresh (unheld) write lock for this root; use it as a context manager."""
        return create_write_lock(self.root, self.lock_strategy)

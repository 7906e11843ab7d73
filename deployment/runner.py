import os
import re
import logging
import importlib.util
from dataclasses import dataclass
from typing import Callable, List, Optional

from .deployer import Deployer
from .exceptions import MigrationError
from .notifications import send_alert

logger = logging.getLogger(__name__)

MIGRATION_FILE_RE = re.compile(r"^(\d+)_(\w+)\.py$")


@dataclass
class Migration:
    number: int
    name: str
    path: str

    def load(self) -> Callable[[Deployer], None]:
        """Imports the migration file and returns its ``migrate`` function."""
        module_name = f"_migration_{self.number}_{self.name}"
        spec = importlib.util.spec_from_file_location(module_name, self.path)
        if spec is None or spec.loader is None:
            raise MigrationError(f"Cannot load migration {self.path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        migrate = getattr(module, "migrate", None)
        if not callable(migrate):
            raise MigrationError(f"Migration {self.path} does not define migrate(deployer)")
        return migrate


def discover_migrations(directory: str) -> List[Migration]:
    """Numbered migration files in ``directory``, sorted by number."""
    if not os.path.isdir(directory):
        raise MigrationError(f"Migrations directory not found: {directory}")

    migrations = {}
    for filename in os.listdir(directory):
        match = MIGRATION_FILE_RE.match(filename)
        if not match:
            continue
        number = int(match.group(1))
        if number in migrations:
            raise MigrationError(
                f"Duplicate migration number {number}: {migrations[number].path} and {filename}"
            )
        migrations[number] = Migration(number, match.group(2), os.path.join(directory, filename))

    return [migrations[n] for n in sorted(migrations)]


class MigrationRunner:
    """Runs pending migrations one at a time; the first failure stops the run."""

    def __init__(self, deployer: Deployer, migrations_dir: str):
        self.deployer = deployer
        self.migrations_dir = migrations_dir

    @property
    def record(self):
        return self.deployer.record

    def pending(self, from_number: Optional[int] = None, to_number: Optional[int] = None,
                reset: bool = False) -> List[Migration]:
        if from_number is not None:
            start = from_number
        elif reset:
            start = 0
        else:
            start = self.record.last_completed_migration + 1

        return [
            m for m in discover_migrations(self.migrations_dir)
            if m.number >= start and (to_number is None or m.number <= to_number)
        ]

    def run(self, from_number: Optional[int] = None, to_number: Optional[int] = None,
            reset: bool = False) -> List[Migration]:
        """Runs pending migrations in order and returns the ones that completed."""
        if reset:
            self.record.reset()

        to_run = self.pending(from_number, to_number, reset)
        if not to_run:
            logger.info("Network up to date.")
            return []

        completed = []
        for migration in to_run:
            logger.info(f"Running migration: {migration.number}_{migration.name}.py")
            try:
                migrate = migration.load()
                migrate(self.deployer)
            except Exception as e:
                logger.error(f"Migration {migration.number}_{migration.name} failed: {e}")
                # Addresses of contracts deployed before the failure are kept.
                try:
                    self.record.save()
                except Exception as save_error:
                    logger.error(f"Failed to save deployment record: {save_error}")
                send_alert(f"Migration {migration.number}_{migration.name} failed: {e}",
                           self.deployer.config)
                raise

            self.record.mark_completed(migration.number)
            self.record.save()
            completed.append(migration)
            logger.info(f"Saving migration {migration.number} to deployment record")

        logger.info(f"Completed {len(completed)} migration(s)")
        return completed

    def status(self):
        """(migration, completed) pairs for every migration on disk."""
        last = self.record.last_completed_migration
        return [(m, m.number <= last) for m in discover_migrations(self.migrations_dir)]

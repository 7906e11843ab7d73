import os
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import ArtifactNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    """A compiled contract as produced by Truffle (build/contracts/<Name>.json)."""
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source_path: Optional[str] = None
    networks: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def network_address(self, chain_id: int) -> Optional[str]:
        entry = self.networks.get(str(chain_id))
        if entry:
            return entry.get("address")
        return None

    def has_function(self, name: str) -> bool:
        return any(item.get("type") == "function" and item.get("name") == name for item in self.abi)


def load_artifact(file_path: str) -> Artifact:
    """Loads a contract artifact from its JSON file."""
    with open(file_path, 'r') as f:
        data = json.load(f)

    try:
        return Artifact(
            contract_name=data['contractName'],
            abi=data['abi'],
            bytecode=data.get('bytecode') or "0x",
            source_path=data.get('sourcePath'),
            networks=data.get('networks') or {},
        )
    except KeyError as e:
        raise ArtifactNotFoundError(f"Artifact {file_path} is missing field {e}")


class ArtifactRegistry:
    """
    Maps logical contract names to compiled artifact files.

    An explicit mapping (name -> path) takes precedence; any other name is
    resolved as ``<build_dir>/<name>.json``.
    """

    def __init__(self, build_dir: str, mapping: Optional[Dict[str, str]] = None):
        self.build_dir = build_dir
        self.mapping = dict(mapping or {})

    @classmethod
    def from_config(cls, config) -> "ArtifactRegistry":
        mapping = {}
        if config.artifact_map:
            with open(config.artifact_map, 'r') as f:
                mapping = json.load(f)
            base_dir = os.path.dirname(os.path.abspath(config.artifact_map))
            mapping = {name: os.path.join(base_dir, path) for name, path in mapping.items()}
        return cls(config.build_dir, mapping)

    def path_for(self, name: str) -> str:
        if name in self.mapping:
            return self.mapping[name]
        return os.path.join(self.build_dir, f"{name}.json")

    def require(self, name: str) -> Artifact:
        """Returns a fresh copy of the named artifact; linking mutates it."""
        path = self.path_for(name)
        if not os.path.exists(path):
            raise ArtifactNotFoundError(f"Could not find artifact for {name} at {path}")

        artifact = load_artifact(path)
        if artifact.contract_name != name:
            logger.warning(f"Artifact at {path} is named {artifact.contract_name}, expected {name}")
        logger.debug(f"Loaded artifact {name} from {path}")
        return artifact

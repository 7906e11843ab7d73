import os
import json
import logging
import tempfile
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class DeploymentRecord:
    """
    Deployment state for one chain, persisted in deployment.json.

    File layout::

        {
          "<chainId>": {
            "contracts": {"HTLCProxy": "0x..."},
            "lastCompletedMigration": 3
          }
        }
    """

    def __init__(self, path: str, chain_id: int, data: Optional[Dict[str, Any]] = None):
        self.path = path
        self.chain_id = chain_id
        self._data = data if data is not None else {}
        self._data.setdefault(str(chain_id), {"contracts": {}, "lastCompletedMigration": 0})

    @classmethod
    def load(cls, path: str, chain_id: int) -> "DeploymentRecord":
        data: Dict[str, Any] = {}
        if os.path.exists(path):
            with open(path, 'r') as f:
                data = json.load(f)
            logger.info(f"Loaded deployment record from {path}")
        else:
            logger.info(f"No deployment record at {path}, starting fresh")
        return cls(path, chain_id, data)

    @property
    def _chain(self) -> Dict[str, Any]:
        chain = self._data[str(self.chain_id)]
        chain.setdefault("contracts", {})
        chain.setdefault("lastCompletedMigration", 0)
        return chain

    @property
    def contracts(self) -> Dict[str, str]:
        return dict(self._chain["contracts"])

    def address_of(self, name: str) -> Optional[str]:
        return self._chain["contracts"].get(name)

    def set_address(self, name: str, address: str) -> None:
        self._chain["contracts"][name] = address

    @property
    def last_completed_migration(self) -> int:
        return int(self._chain["lastCompletedMigration"])

    def mark_completed(self, number: int) -> None:
        self._chain["lastCompletedMigration"] = number

    def reset(self) -> None:
        self._chain["lastCompletedMigration"] = 0

    def save(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".deployment-", suffix=".json")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except Exception:
            os.unlink(tmp_path)
            raise
        logger.debug(f"Deployment record saved to {self.path}")

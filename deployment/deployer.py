import logging
from typing import Any, Dict, Optional

from web3 import Web3

from .artifacts import Artifact, ArtifactRegistry
from .config import MigrationConfig
from .exceptions import NotDeployedError, TransactionFailedError, UnlinkedLibraryError
from .linker import link_bytecode, unlinked_libraries
from .registry import DeploymentRecord

logger = logging.getLogger(__name__)


class Deployer:
    """
    Link / deploy / transact primitives handed to every migration.

    Every call blocks until its transaction is mined, so the steps of a
    migration run strictly one after another.
    """

    def __init__(self, w3: Web3, private_key: str, artifacts: ArtifactRegistry,
                 record: DeploymentRecord, config: MigrationConfig):
        self.w3 = w3
        self.private_key = private_key
        self.artifacts = artifacts
        self.record = record
        self.config = config
        self.account = self.w3.eth.account.from_key(private_key)
        self.chain_id = record.chain_id

    def address_of(self, artifact: Artifact) -> Optional[str]:
        """Known address for ``artifact`` on this chain, if any."""
        address = self.record.address_of(artifact.contract_name)
        if address is None:
            address = artifact.network_address(self.chain_id)
        return address

    def link(self, library: Artifact, target: Artifact) -> None:
        """Embeds the deployed address of ``library`` into ``target``'s bytecode."""
        address = self.address_of(library)
        if address is None:
            raise NotDeployedError(
                f"Cannot link {library.contract_name} into {target.contract_name}: "
                f"{library.contract_name} has not been deployed on chain {self.chain_id}"
            )

        target.bytecode = link_bytecode(target.bytecode, library.contract_name, address,
                                        source_path=library.source_path)
        logger.info(f"Linking {library.contract_name} ({address}) into {target.contract_name}")

    def deploy(self, artifact: Artifact, *args, overwrite: bool = True):
        """Deploys ``artifact`` and records its address. Returns the contract instance."""
        name = artifact.contract_name

        if not overwrite:
            existing = self.address_of(artifact)
            if existing is not None and self._has_code(existing):
                logger.info(f"Reusing {name} at {existing}")
                return self._instance(artifact, existing)

        missing = unlinked_libraries(artifact.bytecode)
        if missing:
            raise UnlinkedLibraryError(name, missing)

        logger.info(f"Deploying {name}...")
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        tx = factory.constructor(*args).build_transaction(self._tx_params())
        receipt = self._send(tx, f"deploy {name}")

        address = receipt['contractAddress']
        if not address:
            raise TransactionFailedError(f"Deployment of {name} returned no contract address", receipt)

        self.record.set_address(name, address)
        artifact.networks[str(self.chain_id)] = {
            "address": address,
            "transactionHash": Web3.to_hex(receipt['transactionHash']),
        }
        logger.info(f"-> {name} deployed at {address}")
        return self._instance(artifact, address)

    def deployed(self, artifact: Artifact):
        """Contract instance for an existing deployment of ``artifact``."""
        name = artifact.contract_name
        address = self.address_of(artifact)
        if address is None:
            raise NotDeployedError(f"{name} has not been deployed to chain {self.chain_id}")
        if not self._has_code(address):
            raise NotDeployedError(f"Cannot create instance of {name}; no code at address {address}")
        return self._instance(artifact, address)

    def transact(self, function, *args) -> Dict[str, Any]:
        """Sends one state-changing contract call and waits for its receipt."""
        fn_name = getattr(function, 'fn_name', repr(function))
        logger.info(f"Calling {fn_name}{args}...")
        tx = function(*args).build_transaction(self._tx_params())
        return self._send(tx, fn_name)

    def call(self, function, *args):
        return function(*args).call()

    def _instance(self, artifact: Artifact, address: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=artifact.abi)

    def _has_code(self, address: str) -> bool:
        code = self.w3.eth.get_code(Web3.to_checksum_address(address))
        return len(code) > 0

    def _tx_params(self) -> Dict[str, Any]:
        gas_price = self.config.gas_price
        if gas_price is None:
            gas_price = self.w3.eth.gas_price
        return {
            'from': self.account.address,
            'nonce': self.w3.eth.get_transaction_count(self.account.address),
            'gas': self.config.gas_limit,
            'gasPrice': gas_price,
            'chainId': self.chain_id,
        }

    def _send(self, tx: Dict[str, Any], description: str) -> Dict[str, Any]:
        signed_tx = self.w3.eth.account.sign_transaction(tx, self.private_key)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        logger.info(f"-> Transaction sent ({description})! Hash: {Web3.to_hex(tx_hash)}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.config.tx_timeout)
        if receipt['status'] != 1:
            raise TransactionFailedError(f"Transaction for {description} reverted: {Web3.to_hex(tx_hash)}", receipt)

        logger.info(f"-> Transaction confirmed in block {receipt['blockNumber']}")
        return receipt

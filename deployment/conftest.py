"""
Shared fixtures: an in-memory chain standing in for web3, and a build
directory of HTLC artifacts with placeholder-bearing bytecode.
"""

import os
import json
import itertools
from types import SimpleNamespace

import pytest
from web3 import Web3

from deployment.artifacts import ArtifactRegistry
from deployment.config import MigrationConfig
from deployment.deployer import Deployer
from deployment.linker import legacy_placeholder
from deployment.registry import DeploymentRecord

CHAIN_ID = 1337
DEPLOYER_KEY = "0x" + "11" * 32
DEPLOYER_ADDRESS = Web3.to_checksum_address("0x" + "d0" * 20)
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

LIBRARIES = ["SchnorrVerifier", "QuotaLib", "HTLCLib", "HTLCDebtLib", "HTLCUserLib"]

PROXY_ABI = [
    {"type": "function", "name": "upgradeTo", "inputs": [{"name": "impl", "type": "address"}],
     "outputs": [], "stateMutability": "nonpayable"},
    {"type": "function", "name": "implementation", "inputs": [],
     "outputs": [{"name": "", "type": "address"}], "stateMutability": "view"},
]


def make_address(n):
    return Web3.to_checksum_address("0x" + f"{n:040x}")


def bytecode_linking(*libraries):
    return "0x6080" + "".join(legacy_placeholder(name) + "60" for name in libraries) + "00"


class FakeCall:
    def __init__(self, chain, address, name, args):
        self.chain = chain
        self.address = address
        self.name = name
        self.args = args

    def build_transaction(self, params):
        return {**params, 'to': self.address, 'data': (self.name, self.args)}

    def call(self):
        return self.chain.storage.get(self.address.lower(), {}).get(self.name)


class FakeFunction:
    def __init__(self, chain, address, name):
        self.chain = chain
        self.address = address
        self.fn_name = name

    def __call__(self, *args):
        return FakeCall(self.chain, self.address, self.fn_name, args)


class FakeFunctions:
    def __init__(self, chain, address):
        self._chain = chain
        self._address = address

    def __getattr__(self, name):
        return FakeFunction(self._chain, self._address, name)


class FakeContract:
    def __init__(self, chain, address, abi):
        self.address = address
        self.abi = abi
        self.functions = FakeFunctions(chain, address)


class FakeConstructor:
    def __init__(self, bytecode, args):
        self.bytecode = bytecode
        self.args = args

    def build_transaction(self, params):
        return {**params, 'to': None, 'data': self.bytecode, 'args': self.args}


class FakeFactory:
    def __init__(self, bytecode):
        self.bytecode = bytecode

    def constructor(self, *args):
        return FakeConstructor(self.bytecode, args)


class FakeAccounts:
    def from_key(self, key):
        return SimpleNamespace(address=DEPLOYER_ADDRESS, key=key)

    def sign_transaction(self, tx, key):
        return SimpleNamespace(raw_transaction=tx)


class FakeEth:
    """Just enough of ``w3.eth`` to mine deployments and proxy upgrades."""

    def __init__(self):
        self.account = FakeAccounts()
        self.chain_id = CHAIN_ID
        self.gas_price = 1000000000
        self.code = {}
        self.storage = {}
        self.transactions = []
        self.receipts = {}
        self.revert_deployment = None
        self._addresses = itertools.count(0x1000)

    def install(self, address, code=b"\x60\x80"):
        self.code[address.lower()] = code

    def contract(self, address=None, abi=None, bytecode=None):
        if bytecode is not None:
            return FakeFactory(bytecode)
        return FakeContract(self, address, abi)

    def get_transaction_count(self, address):
        return len(self.transactions)

    def get_code(self, address):
        return self.code.get(address.lower(), b"")

    def send_raw_transaction(self, tx):
        self.transactions.append(tx)
        tx_hash = len(self.transactions).to_bytes(32, "big")
        receipt = {'status': 1, 'blockNumber': len(self.transactions),
                   'transactionHash': tx_hash, 'contractAddress': None}

        if tx['to'] is None:
            if "__" in tx['data'] or len(self.deployments()) == self.revert_deployment:
                receipt['status'] = 0
            else:
                address = make_address(next(self._addresses))
                self.code[address.lower()] = tx['data']
                receipt['contractAddress'] = address
        else:
            name, args = tx['data']
            if name == "upgradeTo":
                self.storage.setdefault(tx['to'].lower(), {})["implementation"] = args[0]

        self.receipts[tx_hash] = receipt
        return tx_hash

    def wait_for_transaction_receipt(self, tx_hash, timeout=120):
        return self.receipts[tx_hash]

    def deployments(self):
        return [tx for tx in self.transactions if tx['to'] is None]

    def calls(self, name):
        return [tx for tx in self.transactions if tx['to'] is not None and tx['data'][0] == name]


def write_artifact(build_dir, name, bytecode="0x6080", abi=None, networks=None):
    path = os.path.join(build_dir, f"{name}.json")
    with open(path, 'w') as f:
        json.dump({
            "contractName": name,
            "abi": abi or [],
            "bytecode": bytecode,
            "sourcePath": f"contracts/{name}.sol",
            "networks": networks or {},
        }, f)
    return path


@pytest.fixture
def fake_eth():
    return FakeEth()


@pytest.fixture
def build_dir(tmp_path):
    build = tmp_path / "build"
    build.mkdir()
    for name in LIBRARIES:
        write_artifact(str(build), name)
    write_artifact(str(build), "HTLCSmgLib", bytecode_linking("SchnorrVerifier", "QuotaLib", "HTLCLib"))
    write_artifact(str(build), "HTLCDelegate", bytecode_linking(
        "SchnorrVerifier", "QuotaLib", "HTLCLib", "HTLCDebtLib", "HTLCSmgLib", "HTLCUserLib"))
    write_artifact(str(build), "HTLCProxy", abi=PROXY_ABI)
    return str(build)


@pytest.fixture
def config(tmp_path, build_dir):
    return MigrationConfig(
        private_key=DEPLOYER_KEY,
        chain_id=CHAIN_ID,
        build_dir=build_dir,
        migrations_dir=MIGRATIONS_DIR,
        deployment_file=str(tmp_path / "deployment.json"),
        log_file=str(tmp_path / "migrations.log"),
    )


@pytest.fixture
def deployed_network(fake_eth, config):
    """Libraries and HTLCProxy from earlier migrations, already on chain."""
    record = DeploymentRecord(config.deployment_file, CHAIN_ID)
    for offset, name in enumerate(LIBRARIES + ["HTLCProxy"]):
        address = make_address(0xA000 + offset)
        fake_eth.install(address)
        record.set_address(name, address)
    record.mark_completed(3)
    record.save()
    return record


@pytest.fixture
def deployer(fake_eth, config, deployed_network):
    w3 = SimpleNamespace(eth=fake_eth)
    record = DeploymentRecord.load(config.deployment_file, CHAIN_ID)
    return Deployer(w3, config.private_key, ArtifactRegistry(config.build_dir), record, config)

"""
HTLC Deployment Tooling
=======================

Migration runner for deploying, linking and upgrading the HTLC contracts.

Structure:
- artifacts: compiled contract artifact lookup
- linker: library address linking into bytecode
- registry: persisted deployment state (deployment.json)
- deployer: link / deploy / transact primitives over web3
- runner: numbered migration discovery and sequential execution
"""

__version__ = "1.0.0"
__author__ = "Wanchain Cross-Chain Team"

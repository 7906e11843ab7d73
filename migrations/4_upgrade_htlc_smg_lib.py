"""
Upgrade HTLCSmgLib and HTLCDelegate, then point HTLCProxy at the new delegate.

SchnorrVerifier, QuotaLib, HTLCLib, HTLCDebtLib, HTLCUserLib and HTLCProxy
must already be deployed by earlier migrations.
"""

from deployment.exceptions import MigrationError

SMG_LIB_LIBRARIES = ("SchnorrVerifier", "QuotaLib", "HTLCLib")
DELEGATE_LIBRARIES = ("SchnorrVerifier", "QuotaLib", "HTLCLib", "HTLCDebtLib", "HTLCSmgLib", "HTLCUserLib")


def migrate(deployer):
    artifacts = deployer.artifacts

    HTLCSmgLib = artifacts.require("HTLCSmgLib")
    HTLCProxy = artifacts.require("HTLCProxy")
    HTLCDelegate = artifacts.require("HTLCDelegate")

    # Fails before any deployment if the proxy is missing.
    htlc_proxy = deployer.deployed(HTLCProxy)

    for name in SMG_LIB_LIBRARIES:
        deployer.link(artifacts.require(name), HTLCSmgLib)
    deployer.deploy(HTLCSmgLib)

    for name in DELEGATE_LIBRARIES:
        library = HTLCSmgLib if name == "HTLCSmgLib" else artifacts.require(name)
        deployer.link(library, HTLCDelegate)
    htlc_delegate = deployer.deploy(HTLCDelegate)

    deployer.transact(htlc_proxy.functions.upgradeTo, htlc_delegate.address)

    if HTLCProxy.has_function("implementation"):
        current = deployer.call(htlc_proxy.functions.implementation)
        if current.lower() != htlc_delegate.address.lower():
            raise MigrationError(
                f"HTLCProxy implementation is {current}, expected {htlc_delegate.address}"
            )

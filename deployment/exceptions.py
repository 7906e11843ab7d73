"""Exceptions raised by the deployment tooling."""


class DeploymentError(Exception):
    """Base class for all deployment failures."""


class ConfigurationError(DeploymentError):
    pass


class ArtifactNotFoundError(DeploymentError):
    pass


class LinkError(DeploymentError):
    pass


class UnlinkedLibraryError(DeploymentError):
    """Raised when a contract still references libraries that were never linked."""

    def __init__(self, contract_name, libraries):
        self.contract_name = contract_name
        self.libraries = list(libraries)
        super().__init__(
            f"{contract_name} contains unresolved libraries. "
            f"Deploy and link the following libraries first: {', '.join(self.libraries)}"
        )


class NotDeployedError(DeploymentError):
    pass


class TransactionFailedError(DeploymentError):
    def __init__(self, message, receipt=None):
        self.receipt = receipt
        super().__init__(message)


class MigrationError(DeploymentError):
    pass

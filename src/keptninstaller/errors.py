"""Domain errors for the keptn installer."""


class InstallerError(RuntimeError):
    """Raised when the installation cannot continue safely."""


class PreconditionError(InstallerError):
    """A required tool, remote artifact or input is missing."""


class CredentialValidationError(InstallerError):
    """A credential field is malformed or rejected by the identity provider."""


class ConnectivityError(InstallerError):
    """The cluster control plane could not be reached with the given identity."""


class MutationError(InstallerError):
    """Applying a manifest to the cluster failed."""


class ConvergenceError(InstallerError):
    """Cluster state did not converge within the polling policy."""


class ClassificationError(InstallerError):
    """The installer logs could not be captured or report a failed installation."""


class BootstrapError(InstallerError):
    """The local CLI could not be configured after a successful installation."""

class BootstrapError(RuntimeError):
    """Base class of the errors which abort a bootstrap run."""
    pass


class ValidationError(BootstrapError):
    """The invocation flags are missing, malformed or inconsistent."""

    def __init__(self, message, flag=None):
        super().__init__(message)
        self.flag = flag


class PreconditionError(BootstrapError):
    """The node is not ready to be bootstrapped."""
    pass


class DiscoveryError(BootstrapError):
    """A fact could not be read from the instance metadata service."""

    def __init__(self, fact, message):
        super().__init__(
            "Failed to discover {}: {}".format(fact, message))
        self.fact = fact


class BootstrapIOError(BootstrapError):
    """A generated artifact could not be written or chowned."""

    def __init__(self, path, message):
        super().__init__(
            "Failed to write {}: {}".format(path, message))
        self.path = path


class SupervisorControlError(BootstrapError):
    pass

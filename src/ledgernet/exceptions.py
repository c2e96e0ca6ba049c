from typing import List, Optional


class LedgerNetError(Exception):
    """Base exception for all application-specific errors."""

    pass


# --- 1. Errors related to loading and parsing the build file ---
class ConfigError(LedgerNetError):
    """Base class for errors encountered while finding, reading, or parsing build files."""

    pass


class ConfigFileMissingError(ConfigError):
    """Raised when the build file cannot be found."""

    pass


class ConfigParsingError(ConfigError):
    """Raised when a YAML build file is syntactically incorrect."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when the build file fails structural validation (e.g., Pydantic)."""

    pass


# --- 2. Errors raised by the container engine ---
class EngineError(LedgerNetError):
    """Base class for any failing container engine call."""

    pass


class ResourceNotFoundError(EngineError):
    """Raised when a container or network no longer exists."""

    pass


class NetworkCreateError(EngineError):
    """Raised when the engine rejects the creation of the build network."""

    pass


class ImagePullError(EngineError):
    """Raised when an image cannot be pulled."""

    pass


class KeyGenerationError(EngineError):
    """Raised when the one-shot key generation container fails."""

    pass


# --- 3. Errors related to exhausted resources ---
class ResourceExhaustion(LedgerNetError):
    """Base class for errors caused by running out of a finite resource."""

    pass


class AddressPoolExhausted(ResourceExhaustion):
    """Raised when a subnet has fewer free addresses than requested."""

    pass


# --- 4. Errors raised by identity and genesis collaborators ---
class IdentityGenerationError(LedgerNetError):
    """Raised when node identities or the permissioned peers file cannot be produced."""

    pass


class GenesisGenerationError(LedgerNetError):
    """Raised when the genesis description cannot be produced."""

    pass


# --- 5. Errors related to the build lifecycle ---
class BuildStateError(LedgerNetError):
    """Raised when a Builder is driven through an illegal state transition."""

    pass


class AggregateError(LedgerNetError):
    """
    Wraps every failure of one parallel run.

    `failures` holds `(index, exception)` pairs in index order so callers can
    tell exactly which units failed.
    """

    def __init__(self, title: str, failures: List[tuple], total: int):
        self.title = title
        self.failures = sorted(failures, key=lambda f: f[0])
        self.total = total
        lines = [f"{title}: {self.succeeded}/{total} succeeded"]
        for index, error in self.failures:
            lines.append(f"  [{index}] {error.__class__.__name__}: {error}")
        super().__init__("\n".join(lines))

    @property
    def failed_indices(self) -> List[int]:
        return [index for index, _ in self.failures]

    @property
    def succeeded(self) -> int:
        return self.total - len(self.failures)


class DestroyError(LedgerNetError):
    """Raised when teardown could not remove every labelled resource."""

    def __init__(self, errors: List[Exception], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            message = "destroy: " + "\n".join(str(e) for e in errors)
        super().__init__(message)

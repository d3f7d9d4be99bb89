"""Error taxonomy shared by every collection module."""


class CollectionError(Exception):
    """Base class for all collection errors."""


class ConfigurationError(CollectionError):
    """Missing or malformed builder input."""


class StateConstraintViolation(CollectionError):
    """A state transition would break an issuance invariant."""


class StateLockedError(StateConstraintViolation):
    """The collection state is locked and can no longer change."""


class WindowViolation(StateConstraintViolation):
    """The reference time is outside the collection mint window."""


class CapacityExceeded(StateConstraintViolation):
    """Minting would exceed the maximum number of NFTs or sequence numbers."""


class EncodingError(CollectionError):
    """A value cannot be represented in its on-chain form."""


class RangeError(EncodingError):
    """A numeric value is outside the range its encoding supports."""


class NotFoundError(CollectionError):
    """A script template or expected UTxO could not be found."""


class ExternalError(CollectionError):
    """Opaque failure raised by the ledger client or a remote resource."""

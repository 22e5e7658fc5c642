"""Exception hierarchy shared by the store, identity service and client."""


class HuluganError(Exception):
    """Base class for all fund tracker errors."""


class LoadError(HuluganError):
    """Raised when reading the group collection fails."""


class SaveError(HuluganError):
    """Raised when writing a group's paid weeks fails."""


class AuthError(HuluganError):
    """Raised when sending or verifying a magic link fails."""


class StoreError(HuluganError):
    """Base class for rejections raised by the record store."""


class PermissionDeniedError(StoreError):
    """Raised when a non-admin identity attempts a write."""


class GroupNotFoundError(StoreError):
    """Raised when a write targets a group id that does not exist."""


class PaidWeeksOutOfRangeError(StoreError):
    """Raised when paid weeks would fall outside [0, weeks_total]."""


class InvalidGroupError(StoreError):
    """Raised when a new group has an empty name or invalid amounts."""


class MagicLinkError(HuluganError):
    """Raised when a magic link token is malformed, expired or already used."""

"""
daobasic Exceptions

Package-wide exception roots. Governance errors extend DaoException and
live next to the components that raise them.
"""


class DaoException(Exception):
    """Base exception for daobasic."""
    pass


class ConfigurationError(DaoException):
    """Configuration error."""
    pass

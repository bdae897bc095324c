"""
daobasic

Embeddable DAO governance engine: proposals, weighted votes and the
approval/execution lifecycle.

Core imports are lazily loaded so that importing a submodule does not
configure logging or read the environment twice. For direct access:

    from daobasic.governance import GovernanceEngine, Vote, ProposalState
    from daobasic.config import load_config
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceEngine':
        from .governance import GovernanceEngine
        return GovernanceEngine
    elif name == 'GovernanceConfig':
        from .config import GovernanceConfig
        return GovernanceConfig
    elif name == 'DaoException':
        from .exceptions import DaoException
        return DaoException
    raise AttributeError(f"module 'daobasic' has no attribute {name!r}")

__all__ = ['GovernanceEngine', 'GovernanceConfig', 'DaoException']

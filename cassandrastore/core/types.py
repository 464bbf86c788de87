"""
Core types shared across the storage layer.
"""

from enum import Enum


class Consistency(Enum):
    """Consistency levels used by the stores."""
    QUORUM = "QUORUM"
    LOCAL_QUORUM = "LOCAL_QUORUM"


# Names of the fixed feed and metadata set served to the host application
DEFAULT_FEED = "edugain"
IDP_REMOTE_SET = "saml20-idp-remote"

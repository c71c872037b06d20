from .resolver import CandidateIdentity, IdentityResolver, fallback_identity
from .sources import DiscoverySource, MarkupSource, MessageLogSource, RosterSource, default_sources

__all__ = [
    "CandidateIdentity",
    "DiscoverySource",
    "IdentityResolver",
    "MarkupSource",
    "MessageLogSource",
    "RosterSource",
    "default_sources",
    "fallback_identity",
]

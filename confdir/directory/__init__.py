"""Policy core of the config-backed directory."""

from .backend import ConfigBackend, DirectorySnapshot
from .errors import (
    AuthorizationError,
    CredentialInvalid,
    DirectoryError,
    IdentityFormatError,
    LookupNotFound,
    MembershipMismatch,
    ResultCode,
    UnsupportedQuery,
)
from .groups import GroupResolver
from .identity import BindIdentity, parse_bind_dn
from .protocol import ConnectionInfo, Entry, EntryAttribute, SearchRequest, SearchResult, filter_object_class

__all__ = [
    "AuthorizationError",
    "BindIdentity",
    "ConfigBackend",
    "ConnectionInfo",
    "CredentialInvalid",
    "DirectoryError",
    "DirectorySnapshot",
    "Entry",
    "EntryAttribute",
    "GroupResolver",
    "IdentityFormatError",
    "LookupNotFound",
    "MembershipMismatch",
    "ResultCode",
    "SearchRequest",
    "SearchResult",
    "UnsupportedQuery",
    "filter_object_class",
    "parse_bind_dn",
]

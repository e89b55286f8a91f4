"""Directory error taxonomy and the LDAP result codes they surface as."""

from __future__ import annotations

from enum import IntEnum


class ResultCode(IntEnum):
    SUCCESS = 0
    OPERATIONS_ERROR = 1
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS_RIGHTS = 50


class DirectoryError(RuntimeError):
    result_code = ResultCode.OPERATIONS_ERROR
    reason = "directory_error"


class IdentityFormatError(DirectoryError):
    result_code = ResultCode.INVALID_CREDENTIALS
    reason = "identity_format"


class LookupNotFound(DirectoryError):
    result_code = ResultCode.INVALID_CREDENTIALS
    reason = "lookup_not_found"


class MembershipMismatch(DirectoryError):
    result_code = ResultCode.INVALID_CREDENTIALS
    reason = "membership_mismatch"


class CredentialInvalid(DirectoryError):
    result_code = ResultCode.INVALID_CREDENTIALS
    reason = "credential_invalid"


class AuthorizationError(DirectoryError):
    result_code = ResultCode.INSUFFICIENT_ACCESS_RIGHTS
    reason = "authorization"


class UnsupportedQuery(DirectoryError):
    result_code = ResultCode.OPERATIONS_ERROR
    reason = "unsupported_query"

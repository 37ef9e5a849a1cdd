"""
Typed exception hierarchy for the billing kernel.

Every error carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes rather than only in the message, so
callers catch by type and report by field instead of parsing strings.

    BillingKernelError (base)
    |
    +-- ClientError
    |   +-- ClientNotFoundError
    |
    +-- DataAccessError
    |
    +-- GroupError
    |   +-- GroupNotFoundError
    |   +-- GroupRoleConflictError
    |
    +-- ApprovalError
        +-- InvalidApprovalTransitionError
        +-- ApprovalReasonRequiredError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Client          | CLIENT_NOT_FOUND            | Client ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Data access     | DATA_ACCESS_FAILURE         | The store could not answer a query
----------------|-----------------------------|-----------------------------------------
Group           | GROUP_NOT_FOUND             | Group ID doesn't exist
                | GROUP_ROLE_CONFLICT         | Company already holds a group role
----------------|-----------------------------|-----------------------------------------
Approval        | INVALID_APPROVAL_TRANSITION | Status change not allowed from state
                | APPROVAL_REASON_REQUIRED    | Rejection without a reason

Degraded historical data (orphaned references, unparseable durations,
unset rates) is NOT an error: it resolves to zero contributions and a
WARNING log.  Only a store that cannot answer raises ``DataAccessError``.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Client-related exceptions


class ClientError(BillingKernelError):
    """Base exception for client-related errors."""

    code: str = "CLIENT_ERROR"


class ClientNotFoundError(ClientError):
    """Client with given ID was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


# Store access


class DataAccessError(BillingKernelError):
    """
    The data store could not answer a query for one client.

    Scoped to a single client so that roster and group computations can
    record it against that client and carry on with the rest.
    """

    code: str = "DATA_ACCESS_FAILURE"

    def __init__(self, client_id: str | None, operation: str, detail: str = ""):
        self.client_id = client_id
        self.operation = operation
        self.detail = detail
        message = f"Data access failure during {operation}"
        if client_id is not None:
            message += f" for client {client_id}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


# Group-related exceptions


class GroupError(BillingKernelError):
    """Base exception for company group errors."""

    code: str = "GROUP_ERROR"


class GroupNotFoundError(GroupError):
    """Company group with given ID was not found."""

    code: str = "GROUP_NOT_FOUND"

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Company group not found: {group_id}")


class GroupRoleConflictError(GroupError):
    """
    A company cannot take the requested role in a group.

    A company is the principal of at most one group or a member of at most
    one group, never both, and never a member of its own group.
    """

    code: str = "GROUP_ROLE_CONFLICT"

    def __init__(self, client_id: str, existing_role: str, detail: str = ""):
        self.client_id = client_id
        self.existing_role = existing_role
        message = f"Client {client_id} already holds group role '{existing_role}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


# Approval-related exceptions


class ApprovalError(BillingKernelError):
    """Base exception for period approval errors."""

    code: str = "APPROVAL_ERROR"


class InvalidApprovalTransitionError(ApprovalError):
    """Requested approval status change is not allowed from the current state."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, client_id: str, period_label: str, from_status: str, to_status: str):
        self.client_id = client_id
        self.period_label = period_label
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move approval for client {client_id} period {period_label} "
            f"from {from_status} to {to_status}"
        )


class ApprovalReasonRequiredError(ApprovalError):
    """A rejection must state its reason."""

    code: str = "APPROVAL_REASON_REQUIRED"

    def __init__(self, client_id: str, period_label: str):
        self.client_id = client_id
        self.period_label = period_label
        super().__init__(
            f"Rejecting period {period_label} for client {client_id} requires a reason"
        )

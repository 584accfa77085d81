from rest_framework.exceptions import NotFound, PermissionDenied


class RecordNotFound(NotFound):
    """A referenced user, property, activity type or activity record does not exist."""

    def __init__(self, kind: str, pk):
        self.kind = kind
        self.pk = pk
        super().__init__(f"{kind} with ID {pk} not found")


class AccountInactive(PermissionDenied):
    """The user exists but its account is INACTIVE or DELETED."""

    def __init__(self, pk, account_status: str):
        self.pk = pk
        self.account_status = account_status
        super().__init__(f"User {pk} account is {account_status}")
